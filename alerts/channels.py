"""Alert notification channels."""
import json
import logging
import time
from pathlib import Path
from typing import Protocol, runtime_checkable

from models.enums import Channel, Frequency, Severity, FREQUENCY_SECONDS, coerce_enum

logger = logging.getLogger("farmmonitor.alerts.channels")


@runtime_checkable
class AlertChannel(Protocol):
    def send(self, alert) -> None: ...


class _FrequencyLimited:
    """Minimum interval between sends, from the channel's ``frequency`` setting."""

    def __init__(self, frequency="immediate", clock=time.time):
        self.frequency = coerce_enum(Frequency, frequency, "notification frequency")
        self._interval = FREQUENCY_SECONDS[self.frequency]
        self._clock = clock
        self._last_sent = None

    def _is_rate_limited(self) -> bool:
        if self._last_sent is None or self._interval == 0:
            return False
        return self._clock() - self._last_sent < self._interval

    def _mark_sent(self):
        self._last_sent = self._clock()


class InAppChannel:
    """Print alerts to the terminal and append them to the in-app JSON lines feed."""

    def __init__(self, config=None, console=None):
        cfg = (config or {}).get("notifications", {}).get("in_app", {})
        self.enabled = cfg.get("enabled", True)
        self.sound = cfg.get("sound", True)
        self.feed_path = cfg.get("feed_path", "data/alerts.jsonl")
        self._console = console

    @property
    def console(self):
        if self._console is None:
            from rich.console import Console
            self._console = Console()
        return self._console

    def send(self, alert):
        if not self.enabled:
            return False

        severity_styles = {
            Severity.CRITICAL: "bold white on red",
            Severity.HIGH: "bold red",
            Severity.MEDIUM: "bold yellow",
            Severity.LOW: "bold blue",
        }
        style = severity_styles.get(alert.severity, "")
        sev = alert.severity.value.upper()
        self.console.print(f"[{style}][{sev}] {alert.rule_name}: {alert.message}[/]")
        if self.sound and alert.severity == Severity.CRITICAL:
            self.console.bell()

        if self.feed_path:
            self._append_feed(alert)
        return True

    def _append_feed(self, alert):
        Path(self.feed_path).parent.mkdir(parents=True, exist_ok=True)
        with open(self.feed_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(alert.to_dict()) + "\n")


class EmailChannel(_FrequencyLimited):
    """Email alert channel, throttled by the configured email frequency."""

    def __init__(self, config: dict, clock=time.time):
        from notifications.email_sender import EmailSender
        cfg = config.get("notifications", {}).get("email", {})
        super().__init__(cfg.get("frequency", "immediate"), clock)
        self.sender = EmailSender(config)
        self.enabled = cfg.get("enabled", False)

    def send(self, alert) -> bool:
        if not self.enabled or not self.sender.is_configured():
            return False
        if self._is_rate_limited():
            logger.debug(f"EmailChannel: rate limited ({self.frequency.value})")
            return False

        result = self.sender.send_alert(
            rule_name=alert.rule_name,
            severity=alert.severity.value,
            message=alert.message,
            sensor_value=alert.sensor_value,
            sensor=alert.sensor,
            fired_at=alert.timestamp,
        )
        if result:
            self._mark_sent()
        return result


class SmsChannel(_FrequencyLimited):
    """SMS alert channel via an HTTP gateway."""

    def __init__(self, config: dict, clock=time.time):
        from notifications.sms_sender import SmsSender
        cfg = config.get("notifications", {}).get("sms", {})
        super().__init__(cfg.get("frequency", "immediate"), clock)
        self.sender = SmsSender(config)
        self.enabled = cfg.get("enabled", False)

    def send(self, alert) -> bool:
        if not self.enabled or not self.sender.is_configured():
            return False
        if self._is_rate_limited():
            logger.debug(f"SmsChannel: rate limited ({self.frequency.value})")
            return False

        text = f"[{alert.severity.value.upper()}] {alert.rule_name}: {alert.message}"
        result = self.sender.send(text)
        if result:
            self._mark_sent()
        return result


def build_channel_handlers(config: dict, console=None):
    """Handlers for every channel enabled in the notifications config."""
    notif = config.get("notifications", {})
    handlers = {}
    if notif.get("in_app", {}).get("enabled", True):
        handlers[Channel.IN_APP] = InAppChannel(config, console=console)
    if notif.get("email", {}).get("enabled", False):
        handlers[Channel.EMAIL] = EmailChannel(config)
    if notif.get("sms", {}).get("enabled", False):
        handlers[Channel.SMS] = SmsChannel(config)
    return handlers
