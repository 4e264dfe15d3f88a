"""
CRUD operations (Create, Read, Update, Delete) for database models.

This layer provides a clean separation between API routes and database operations,
following the Repository pattern.
"""

from app.crud import account_deletion, two_factor, user_data

__all__ = ["account_deletion", "two_factor", "user_data"]
