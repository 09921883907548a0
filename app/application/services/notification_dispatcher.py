import logging
from dataclasses import dataclass
from typing import Optional

from ..ports.sms_gateway import SmsGateway, SmsDeliveryFailure
from ...utils import format_e164

logger = logging.getLogger(__name__)

# Twilio error codes worth a specific hint in the logs
KNOWN_GATEWAY_ERRORS = {
    21211: "Invalid phone number format. Use E.164 format (+123456789)",
    21608: "Twilio account cannot send SMS to this country or number. The account may need upgrading",
    21610: "This destination number is not currently reachable via SMS",
    21614: "This phone number is not verified with Twilio. Verify it in the Twilio console",
}

MESSAGE_TEMPLATE = "Your verification code for Fallah Smart is: {code}. This code will expire in {minutes} minutes."


@dataclass
class NotificationDispatcher:
    gateway: Optional[SmsGateway]
    code_ttl_seconds: int = 300
    failure_is_success: bool = False

    def deliver(self, phone_number: str, code: str) -> bool:
        to = format_e164(phone_number)
        minutes = max(1, self.code_ttl_seconds // 60)

        # Always logged, whatever the delivery outcome
        logger.info(f"Verification code for {to}: {code} (expires in {minutes} minutes)")

        if self.gateway is None or not self.gateway.is_configured:
            logger.error("SMS gateway not configured. Cannot send verification code")
            return False

        try:
            sid = self.gateway.send(to, MESSAGE_TEMPLATE.format(code=code, minutes=minutes))
        except SmsDeliveryFailure as e:
            logger.error(f"Error sending SMS to {to}: {e}")
            if e.code is not None:
                logger.error(f"Gateway error code: {e.code}")
                hint = KNOWN_GATEWAY_ERRORS.get(e.code)
                if hint:
                    logger.error(hint)
            if self.failure_is_success:
                logger.warning("SMS_FAILURE_IS_SUCCESS is set: treating failed delivery as sent, code is in the log above")
                return True
            return False

        logger.info(f"SMS sent to {to} with SID: {sid}")
        return True
