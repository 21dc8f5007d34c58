"""
SMS Service - Outbound text messages through Twilio.

Used for asking customers for their appliance model number and for
sending a stale call summary to the office phone.
"""

import logging
from typing import Dict, List, Any, Optional

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

logger = logging.getLogger(__name__)

MODEL_NUMBER_REQUEST_MESSAGE = (
    "Hello, this is regarding your service call. To help our technician prepare, "
    "please reply with the model number of your appliance. Thank you."
)

# Global SMS service instance
_sms_service = None


class SmsNotConfiguredError(Exception):
    """Raised when an SMS is requested without Twilio credentials or a sender number"""
    pass


class SmsSendError(Exception):
    """Raised when Twilio rejects a message"""
    pass


class SmsService:
    """Thin wrapper around the Twilio REST client."""

    def __init__(self, config, client: Optional[Client] = None):
        self.account_sid = config.get('TWILIO_ACCOUNT_SID')
        self.auth_token = config.get('TWILIO_AUTH_TOKEN')
        self.from_number = config.get('TWILIO_PHONE_NUMBER')
        self.alert_phone = config.get('STALE_ALERT_PHONE')
        self.client = client

        if self.client is None and self.account_sid and self.auth_token:
            self.client = Client(self.account_sid, self.auth_token)
            logger.info("Twilio client initialized")

    def is_configured(self) -> bool:
        return self.client is not None and bool(self.from_number)

    def send_sms(self, to: str, body: str) -> Dict[str, Any]:
        """
        Send a text message.

        Raises:
            SmsNotConfiguredError: If Twilio credentials or the sender number are missing
            SmsSendError: If Twilio rejects the message
        """
        if self.client is None:
            raise SmsNotConfiguredError(
                "Twilio is not configured. Please set TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN"
            )
        if not self.from_number:
            raise SmsNotConfiguredError("TWILIO_PHONE_NUMBER not configured")

        try:
            message = self.client.messages.create(body=body, from_=self.from_number, to=to)
        except TwilioRestException as e:
            logger.error(f"Twilio error sending SMS to {to}: {e}")
            raise SmsSendError(f"Failed to send SMS to {to}: {e.msg}")

        logger.info(f"SMS sent to {to} (sid={message.sid})")
        return {'success': True, 'message': f"SMS sent to {to}", 'sid': message.sid}

    def send_model_number_request(self, phone: str) -> Dict[str, Any]:
        """Ask a customer to reply with their appliance model number."""
        if not phone:
            raise ValueError("phone is required")
        return self.send_sms(phone, MODEL_NUMBER_REQUEST_MESSAGE)

    def send_stale_summary(self, stale_calls: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Text the office a summary of stale calls.
        Returns None when there is nothing to send or no alert phone is set.
        """
        if not stale_calls or not self.alert_phone:
            return None

        lines = [f"{len(stale_calls)} service call(s) need attention:"]
        for call in stale_calls[:5]:
            lines.append(f"- {call.get('customerName')} ({call.get('status')})")
        if len(stale_calls) > 5:
            lines.append(f"...and {len(stale_calls) - 5} more")

        return self.send_sms(self.alert_phone, '\n'.join(lines))


def get_sms_service(config=None) -> SmsService:
    """Get or create the global SMS service."""
    global _sms_service
    if _sms_service is None:
        if config is None:
            from config import get_config
            cfg = get_config()
            config = {key: getattr(cfg, key) for key in dir(cfg) if key.isupper()}
        _sms_service = SmsService(config)
    return _sms_service


def set_sms_service(service: Optional[SmsService]):
    """Replace the global SMS service (used by the app factory and tests)."""
    global _sms_service
    _sms_service = service
