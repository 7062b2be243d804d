"""
Outbound SMS gateway.

The rest of the application only sees the narrow SmsGateway interface:
send(recipient, body) -> DeliveryReceipt. TwilioSmsGateway is the production
implementation; tests inject their own.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from app.errors import DeliveryError, describe_exception

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TwilioConfig:
    """Process-wide provider configuration, built once at startup."""
    account_sid: str
    auth_token: str
    from_number: str


@dataclass(frozen=True)
class DeliveryReceipt:
    """Provider confirmation for an accepted message. Not interpreted further."""
    sid: Optional[str]
    status: Optional[str]
    to: Optional[str]


class SmsGateway(Protocol):
    def send(self, recipient: str, body: str) -> DeliveryReceipt:
        ...


class TwilioSmsGateway:
    """
    SMS gateway backed by the Twilio Messages API.

    Each call to send() performs exactly one delivery attempt. Failures of any
    kind (provider rejection, auth, quota, transport) raise DeliveryError.
    """

    def __init__(self, config: TwilioConfig, client: Optional[Any] = None):
        self.config = config
        self.client = client if client is not None else Client(config.account_sid, config.auth_token)

    def send(self, recipient: str, body: str) -> DeliveryReceipt:
        logger.info(f"Sending SMS to {recipient} from {self.config.from_number}")
        logger.debug(f"SMS body length: {len(body)} chars")

        try:
            message = self.client.messages.create(
                to=recipient,
                from_=self.config.from_number,
                body=body,
            )
        except TwilioRestException as e:
            logger.error(f"Twilio rejected SMS to {recipient}: status={e.status} code={e.code} msg={e.msg}")
            raise DeliveryError(
                data={"type": type(e).__name__, "status": e.status, "code": e.code, "detail": e.msg}
            ) from e
        except Exception as e:
            logger.error(f"SMS delivery to {recipient} failed: {e}")
            raise DeliveryError(data=describe_exception(e)) from e

        receipt = DeliveryReceipt(
            sid=getattr(message, "sid", None),
            status=getattr(message, "status", None),
            to=getattr(message, "to", None),
        )
        logger.info(f"SMS accepted by provider: sid={receipt.sid}, status={receipt.status}")
        return receipt


def build_sms_gateway(settings) -> Optional[TwilioSmsGateway]:
    """
    Create the production gateway from settings.

    Returns None when Twilio credentials are incomplete; sends then fail with
    DeliveryError and /health/ready reports not_ready.
    """
    if not settings.twilio_configured:
        logger.warning("Twilio is not configured; SMS sending is disabled")
        return None
    return TwilioSmsGateway(settings.twilio_config())
