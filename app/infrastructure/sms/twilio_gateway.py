import logging
from typing import Optional

from twilio.rest import Client
from twilio.http.http_client import TwilioHttpClient
from twilio.base.exceptions import TwilioException, TwilioRestException

from ...core.config import settings
from ...application.ports.sms_gateway import SmsGateway, SmsDeliveryFailure

logger = logging.getLogger(__name__)


class TwilioSmsGateway(SmsGateway):
    def __init__(self, client: Optional[Client] = None, from_number: Optional[str] = None):
        self.from_number = from_number if from_number is not None else settings.TWILIO_PHONE_NUMBER
        self.client = client
        if self.client is None and settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN:
            http_client = TwilioHttpClient(timeout=settings.TWILIO_TIMEOUT_SECONDS)
            self.client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, http_client=http_client)
            logger.info("Twilio client initialized")
        elif self.client is None:
            logger.warning("Twilio credentials incomplete. Set TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN")

    @property
    def is_configured(self) -> bool:
        return self.client is not None and bool(self.from_number)

    def send(self, to: str, body: str) -> str:
        if not self.is_configured:
            raise SmsDeliveryFailure("Twilio SMS gateway not configured")
        try:
            message = self.client.messages.create(body=body, from_=self.from_number, to=to)
        except TwilioRestException as e:
            raise SmsDeliveryFailure(e.msg or str(e), code=e.code) from e
        except TwilioException as e:
            raise SmsDeliveryFailure(str(e)) from e
        return message.sid
