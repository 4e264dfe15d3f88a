"""
Resend email service for account lifecycle notifications.

Renders the localized deletion emails (scheduled, cancelled, completed) and
sends them through the Resend API.
"""

import logging
from datetime import datetime
from html import escape
from typing import Dict, List, Optional
import resend
from app.core.config import settings

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "es", "fr", "de")
DEFAULT_LANGUAGE = "en"

DELETION_EMAIL_TYPES = ("deletion_scheduled", "deletion_cancelled", "deletion_completed")

# Per-language copy. Each email type has a subject, a heading, a list of
# paragraphs and (for deletion_scheduled) a call-to-action label.
DELETION_EMAIL_TRANSLATIONS: Dict[str, Dict[str, dict]] = {
    "en": {
        "deletion_scheduled": {
            "subject": "Account Deletion Scheduled",
            "title": "Account Deletion Scheduled",
            "paragraphs": [
                "Your account deletion has been scheduled for {scheduled_date}.",
                "You can change your mind until then. Your data stays accessible during the grace period.",
                "Your purchased app access will be preserved.",
            ],
            "button": "Cancel Deletion",
        },
        "deletion_cancelled": {
            "subject": "Account Deletion Cancelled",
            "title": "Welcome Back!",
            "paragraphs": [
                "Your account deletion has been cancelled. Your account remains active.",
                "No further action is needed.",
            ],
        },
        "deletion_completed": {
            "subject": "Account Deleted",
            "title": "Your Account Has Been Deleted",
            "paragraphs": [
                "Your account and personal data have been deleted as requested.",
                "Your purchased app access has been preserved. Contact support if you need to recover it.",
                "Thank you for having been with us.",
            ],
        },
        "footer": "This is a notification about your account.",
    },
    "es": {
        "deletion_scheduled": {
            "subject": "Eliminación de Cuenta Programada",
            "title": "Eliminación de Cuenta Programada",
            "paragraphs": [
                "La eliminación de tu cuenta está programada para el {scheduled_date}.",
                "Puedes cambiar de opinión hasta entonces. Tus datos siguen accesibles durante el periodo de gracia.",
                "Tu acceso a las aplicaciones compradas se conservará.",
            ],
            "button": "Cancelar Eliminación",
        },
        "deletion_cancelled": {
            "subject": "Eliminación de Cuenta Cancelada",
            "title": "¡Bienvenido de Nuevo!",
            "paragraphs": [
                "La eliminación de tu cuenta ha sido cancelada. Tu cuenta sigue activa.",
                "No es necesario hacer nada más.",
            ],
        },
        "deletion_completed": {
            "subject": "Cuenta Eliminada",
            "title": "Tu Cuenta Ha Sido Eliminada",
            "paragraphs": [
                "Tu cuenta y tus datos personales han sido eliminados según lo solicitado.",
                "Tu acceso a las aplicaciones compradas se ha conservado. Contacta con soporte si necesitas recuperarlo.",
                "Gracias por haber estado con nosotros.",
            ],
        },
        "footer": "Esta es una notificación sobre tu cuenta.",
    },
    "fr": {
        "deletion_scheduled": {
            "subject": "Suppression de Compte Programmée",
            "title": "Suppression de Compte Programmée",
            "paragraphs": [
                "La suppression de votre compte est programmée pour le {scheduled_date}.",
                "Vous pouvez changer d'avis d'ici là. Vos données restent accessibles pendant la période de grâce.",
                "Votre accès aux applications achetées sera conservé.",
            ],
            "button": "Annuler la Suppression",
        },
        "deletion_cancelled": {
            "subject": "Suppression de Compte Annulée",
            "title": "Bon Retour !",
            "paragraphs": [
                "La suppression de votre compte a été annulée. Votre compte reste actif.",
                "Aucune autre action n'est nécessaire.",
            ],
        },
        "deletion_completed": {
            "subject": "Compte Supprimé",
            "title": "Votre Compte a été Supprimé",
            "paragraphs": [
                "Votre compte et vos données personnelles ont été supprimés comme demandé.",
                "Votre accès aux applications achetées a été conservé. Contactez le support pour le récupérer.",
                "Merci d'avoir été avec nous.",
            ],
        },
        "footer": "Ceci est une notification concernant votre compte.",
    },
    "de": {
        "deletion_scheduled": {
            "subject": "Kontolöschung Geplant",
            "title": "Kontolöschung Geplant",
            "paragraphs": [
                "Die Löschung Ihres Kontos ist für den {scheduled_date} geplant.",
                "Bis dahin können Sie es sich anders überlegen. Ihre Daten bleiben während der Frist zugänglich.",
                "Ihr Zugang zu gekauften Apps bleibt erhalten.",
            ],
            "button": "Löschung Abbrechen",
        },
        "deletion_cancelled": {
            "subject": "Kontolöschung Abgebrochen",
            "title": "Willkommen Zurück!",
            "paragraphs": [
                "Die Löschung Ihres Kontos wurde abgebrochen. Ihr Konto bleibt aktiv.",
                "Es sind keine weiteren Schritte erforderlich.",
            ],
        },
        "deletion_completed": {
            "subject": "Konto Gelöscht",
            "title": "Ihr Konto Wurde Gelöscht",
            "paragraphs": [
                "Ihr Konto und Ihre persönlichen Daten wurden wie gewünscht gelöscht.",
                "Ihr Zugang zu gekauften Apps bleibt erhalten. Wenden Sie sich an den Support, um ihn wiederherzustellen.",
                "Danke, dass Sie bei uns waren.",
            ],
        },
        "footer": "Dies ist eine Benachrichtigung zu Ihrem Konto.",
    },
}

MONTH_NAMES = {
    "en": ("January", "February", "March", "April", "May", "June", "July",
           "August", "September", "October", "November", "December"),
    "es": ("enero", "febrero", "marzo", "abril", "mayo", "junio", "julio",
           "agosto", "septiembre", "octubre", "noviembre", "diciembre"),
    "fr": ("janvier", "février", "mars", "avril", "mai", "juin", "juillet",
           "août", "septembre", "octobre", "novembre", "décembre"),
    "de": ("Januar", "Februar", "März", "April", "Mai", "Juni", "Juli",
           "August", "September", "Oktober", "November", "Dezember"),
}


def resolve_language(language: Optional[str]) -> str:
    """Map a preference like "fr-CH" to a supported template language."""
    if not language:
        return DEFAULT_LANGUAGE
    base = language.split("-")[0].lower()
    return base if base in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def format_date(value: datetime, language: Optional[str] = None) -> str:
    """Long-form date in the user's language, e.g. "March 3, 2026" or "3 mars 2026"."""
    lang = resolve_language(language)
    month = MONTH_NAMES[lang][value.month - 1]
    if lang == "en":
        return f"{month} {value.day}, {value.year}"
    if lang == "de":
        return f"{value.day}. {month} {value.year}"
    if lang == "es":
        return f"{value.day} de {month} de {value.year}"
    return f"{value.day} {month} {value.year}"


class EmailService:
    """
    Service for sending emails via Resend.
    """

    def __init__(self):
        """Configure the Resend API key"""
        resend.api_key = settings.RESEND_API_KEY

    @property
    def sender(self) -> str:
        return f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"

    def send_deletion_email(
        self,
        to_email: str,
        email_type: str,
        language: Optional[str] = None,
        scheduled_date: Optional[str] = None,
        cancel_url: Optional[str] = None
    ) -> bool:
        """
        Send one of the account deletion emails.

        Args:
            to_email: Recipient email address
            email_type: deletion_scheduled | deletion_cancelled | deletion_completed
            language: User's preferred language (falls back to English)
            scheduled_date: Human-readable deletion date (deletion_scheduled only)
            cancel_url: Link that cancels the deletion (deletion_scheduled only)

        Returns:
            bool: True if email sent successfully, False otherwise
        """
        if email_type not in DELETION_EMAIL_TYPES:
            logger.error(f"Unknown deletion email type: {email_type}")
            return False

        lang = resolve_language(language)
        copy = DELETION_EMAIL_TRANSLATIONS[lang]
        template = copy[email_type]

        paragraphs = [p.format(scheduled_date=scheduled_date or "") for p in template["paragraphs"]]
        button = template.get("button") if cancel_url else None

        params = {
            "from": self.sender,
            "to": [to_email],
            "subject": template["subject"],
            "html": self._build_html(template["title"], paragraphs, copy["footer"], button, cancel_url),
            "text": self._build_text(template["title"], paragraphs, copy["footer"], button, cancel_url),
        }

        try:
            response = resend.Emails.send(params)
        except Exception as e:
            logger.error(f"Resend error sending {email_type} email to {to_email}: {e}")
            return False

        email_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info(f"{email_type} email sent to {to_email} (id: {email_id}, lang: {lang})")
        return True

    def _build_html(
        self,
        title: str,
        paragraphs: List[str],
        footer: str,
        button: Optional[str] = None,
        link: Optional[str] = None
    ) -> str:
        body = "\n".join(
            f'<p style="margin: 0 0 16px 0; color: #555555; font-size: 16px; line-height: 1.5;">{escape(p)}</p>'
            for p in paragraphs
        )

        cta = ""
        if button and link:
            cta = (
                '<p style="margin: 24px 0; text-align: center;">'
                f'<a href="{escape(link, quote=True)}" style="background-color: #4F46E5; color: #ffffff; '
                'padding: 12px 24px; border-radius: 6px; text-decoration: none; font-weight: 600;">'
                f'{escape(button)}</a></p>'
            )

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(title)}</title>
</head>
<body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f4f4f4;">
    <table role="presentation" style="width: 100%; border-collapse: collapse;">
        <tr>
            <td align="center" style="padding: 40px 0;">
                <table role="presentation" style="width: 600px; border-collapse: collapse; background-color: #ffffff; border-radius: 8px;">
                    <tr>
                        <td style="padding: 40px 40px 20px 40px; text-align: center;">
                            <h1 style="margin: 0; color: #333333; font-size: 26px; font-weight: 600;">{escape(title)}</h1>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 0 40px 32px 40px;">
                            {body}
                            {cta}
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 20px 40px; background-color: #f8f9fa; border-top: 1px solid #e5e7eb;">
                            <p style="margin: 0; color: #999999; font-size: 12px; text-align: center;">{escape(footer)}</p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
"""

    def _build_text(
        self,
        title: str,
        paragraphs: List[str],
        footer: str,
        button: Optional[str] = None,
        link: Optional[str] = None
    ) -> str:
        lines = [title, ""]
        for paragraph in paragraphs:
            lines.extend([paragraph, ""])
        if button and link:
            lines.extend([f"{button}: {link}", ""])
        lines.extend(["---", footer])
        return "\n".join(lines)


# Singleton instance
email_service = EmailService()
