"""Public contact form."""

import logging

from fastapi import APIRouter, Depends, status

from edugame.schemas.contact import ContactAck, ContactMessage
from edugame.services.rate_limiter import require_contact_rate_limit
from edugame.tasks import send_contact_email

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/",
    response_model=ContactAck,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(require_contact_rate_limit)],
)
def send_message(body: ContactMessage):
    """Queue the message for email relay."""
    result = send_contact_email.delay(body.model_dump())
    logger.info("Contact message from %s queued (task %s)", body.email, result.id)
    return ContactAck(
        message="Message sent successfully! We'll get back to you within 24 hours.",
        task_id=result.id,
    )
