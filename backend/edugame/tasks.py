"""Background tasks executed by Celery workers."""

import logging
import smtplib
from email.message import EmailMessage

from edugame.celery_app import celery_app
from edugame.config import settings

logger = logging.getLogger(__name__)


def _inbox() -> str:
    return settings.CONTACT_INBOX or settings.SMTP_USER


def _compose(contact: dict) -> list[EmailMessage]:
    relay = EmailMessage()
    relay["From"] = settings.SMTP_USER
    relay["To"] = _inbox()
    relay["Reply-To"] = contact["email"]
    relay["Subject"] = f"New Contact Form Submission: {contact['subject']}"
    relay.set_content(
        f"Name: {contact['name']}\n"
        f"Email: {contact['email']}\n"
        f"Subject: {contact['subject']}\n\n"
        f"{contact['message']}\n"
    )
    messages = [relay]

    if settings.SEND_CONTACT_CONFIRMATION:
        confirmation = EmailMessage()
        confirmation["From"] = settings.SMTP_USER
        confirmation["To"] = contact["email"]
        confirmation["Subject"] = "Thank you for contacting EduGame!"
        confirmation.set_content(
            f"Hi {contact['name']},\n\n"
            "Thanks for reaching out. We received your message about "
            f"\"{contact['subject']}\" and will get back to you within 24 hours.\n\n"
            "The EduGame team\n"
        )
        messages.append(confirmation)
    return messages


@celery_app.task(bind=True, name="send_contact_email", max_retries=3)
def send_contact_email(self, contact: dict) -> dict:
    """Relay a contact-form message to the inbox, plus a confirmation to the sender.

    Skips (without failing) when SMTP is not configured.
    """
    if not settings.SMTP_HOST or not _inbox():
        logger.warning("SMTP not configured, contact message from %s not relayed", contact.get("email"))
        return {"success": False, "skipped": True}

    messages = _compose(contact)
    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            if settings.SMTP_USER:
                smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            for message in messages:
                smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.exception("Contact email relay failed")
        # back-off 10s, 30s, 90s
        raise self.retry(exc=exc, countdown=10 * (3**self.request.retries))

    logger.info("Contact message from %s relayed (%d email(s))", contact["email"], len(messages))
    return {"success": True, "sent": len(messages)}
