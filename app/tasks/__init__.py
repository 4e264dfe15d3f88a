"""
Celery tasks package.

Tasks are organized by domain:
- account_tasks: Scheduled account deletion sweep
- email_tasks: Account lifecycle emails
"""

from app.tasks import account_tasks, email_tasks

__all__ = ["account_tasks", "email_tasks"]
