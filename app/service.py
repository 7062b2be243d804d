"""
Message send workflow.

validate -> authorize -> check target user exists -> deliver -> persist

Each step runs only if every earlier step passed, so a rejected request never
costs a provider call or a database write. Delivery and persistence are two
independent effects with no shared transaction: if the process dies after the
provider accepted the SMS but before the insert commits, the SMS is sent
without a record.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import (
    DeliveryError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    describe_exception,
)
from app.sms_gateway import SmsGateway
from app.storage import create_message, get_user_by_id

logger = logging.getLogger(__name__)

SENT = "sent"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class MessageService:
    def __init__(self, db: Session, gateway: Optional[SmsGateway]):
        self.db = db
        self.gateway = gateway

    def send_message(
        self,
        requesting_user_id: Optional[str],
        target_user_id: str,
        recipient: Optional[str],
        content: Optional[str],
    ):
        """
        Send one SMS on behalf of target_user_id and record it.

        Args:
            requesting_user_id: Session identity, None when unauthenticated
            target_user_id: User the message is sent for (from the request path)
            recipient: Destination phone number
            content: Message body

        Returns:
            The persisted Message with status "sent"

        Raises:
            ValidationError: recipient or content missing/empty
            UnauthorizedError: no session, or session is not target_user_id
            NotFoundError: target user does not exist
            DeliveryError: provider call failed; nothing is persisted
            StorageError: the insert failed
        """
        if _is_blank(recipient) or _is_blank(content):
            logger.info(f"Rejecting send for user {target_user_id}: missing required fields")
            raise ValidationError()

        if requesting_user_id is None or requesting_user_id != target_user_id:
            logger.warning(
                f"Rejecting send for user {target_user_id}: session user is {requesting_user_id or 'anonymous'}"
            )
            raise UnauthorizedError()

        if get_user_by_id(self.db, target_user_id) is None:
            logger.info(f"Rejecting send: user {target_user_id} not found")
            raise NotFoundError()

        if self.gateway is None:
            logger.error("SMS gateway is not configured")
            raise DeliveryError(data={"type": "ConfigurationError", "detail": "SMS gateway is not configured"})

        try:
            receipt = self.gateway.send(recipient, content)
        except DeliveryError:
            raise
        except Exception as e:
            logger.error(f"SMS gateway raised {type(e).__name__}: {e}")
            raise DeliveryError(data=describe_exception(e)) from e
        logger.debug(f"Delivery receipt for user {target_user_id}: {receipt}")

        message = create_message(
            self.db,
            recipient=recipient,
            content=content,
            user_id=target_user_id,
            status=SENT,
        )
        logger.info(f"Message {message.id} sent for user {target_user_id}")
        return message
