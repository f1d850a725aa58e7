"""SMS gateway client for Farm Monitor alerts.

Posts JSON to a configured HTTP gateway via requests.
"""
import os
import logging

import requests

logger = logging.getLogger("farmmonitor.notifications.sms")


class SmsSender:
    """Thin wrapper around an HTTP SMS gateway.

    API key resolution: FARM_MONITOR_SMS_API_KEY, then notifications.sms.api_key.
    """

    def __init__(self, config: dict):
        sms_config = config.get("notifications", {}).get("sms", {})
        self.gateway_url = sms_config.get("gateway_url", "")
        self.number = str(sms_config.get("number", ""))
        self.api_key = os.environ.get("FARM_MONITOR_SMS_API_KEY", sms_config.get("api_key", ""))
        self.timeout = sms_config.get("timeout", 15)

    def is_configured(self) -> bool:
        return all([self.gateway_url, self.number])

    def send(self, text: str) -> bool:
        """Send one text message. Returns False on gateway or network failure."""
        if not self.is_configured():
            return False
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        payload = {"to": self.number, "message": text[:320]}
        try:
            resp = requests.post(self.gateway_url, json=payload, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"SMS send failed: {e}")
            return False
        logger.info(f"SMS sent to {self.number}")
        return True
