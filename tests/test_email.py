"""Tests for email sender and email alert channel."""
from unittest.mock import patch, MagicMock

from models.alerts import AlertEvent
from models.enums import Channel, Severity
from notifications.email_sender import EmailSender
from alerts.channels import EmailChannel


def _configured():
    return {"notifications": {"email": {
        "enabled": True,
        "smtp_host": "smtp.test.com",
        "smtp_port": 587,
        "from_address": "farm@test.com",
        "address": "john@farm.com",
        "smtp_username": "user",
        "smtp_password": "pass",
    }}}


def _alert(severity=Severity.HIGH):
    return AlertEvent(id="1", rule_id="temp_high", rule_name="Temperature Too High",
                      sensor="Temperature", sensor_value=29.2, severity=severity,
                      message="Temperature above 28°C threshold (29.2°C)",
                      channels=frozenset({Channel.EMAIL}))


class TestEmailSender:
    def test_not_configured_missing_fields(self):
        sender = EmailSender({"notifications": {"email": {}}})
        assert sender.is_configured() is False

    def test_configured_with_all_fields(self):
        assert EmailSender(_configured()).is_configured() is True

    def test_env_vars_override_config(self):
        with patch.dict("os.environ", {
            "FARM_MONITOR_SMTP_USER": "env_user",
            "FARM_MONITOR_SMTP_PASS": "env_pass",
        }):
            sender = EmailSender(_configured())
            assert sender.username == "env_user"
            assert sender.password == "env_pass"

    def test_config_used_without_env_vars(self):
        with patch.dict("os.environ", {}, clear=True):
            sender = EmailSender(_configured())
            assert sender.username == "user"
            assert sender.password == "pass"

    def test_send_alert_returns_false_when_not_configured(self):
        sender = EmailSender({"notifications": {"email": {}}})
        assert sender.send_alert("test", "critical", "test msg") is False

    @patch("notifications.email_sender.smtplib.SMTP")
    def test_send_alert_success(self, mock_smtp_class):
        mock_server = MagicMock()
        mock_smtp_class.return_value.__enter__ = MagicMock(return_value=mock_server)
        mock_smtp_class.return_value.__exit__ = MagicMock(return_value=False)

        with patch.dict("os.environ", {}, clear=True):
            sender = EmailSender(_configured())
            result = sender.send_alert("Temperature Too High", "high", "too hot", 29.2,
                                       sensor="Temperature")

        assert result is True
        mock_server.starttls.assert_called_once()
        mock_server.login.assert_called_once_with("user", "pass")
        msg = mock_server.send_message.call_args[0][0]
        assert msg["Subject"] == "[HIGH] Farm Monitor: Temperature Too High"
        assert msg["To"] == "john@farm.com"
        text = msg.get_payload()[0].get_payload(decode=True).decode("utf-8")
        assert "Sensor: Temperature" in text
        assert "Reading: 29.2" in text

    @patch("notifications.email_sender.smtplib.SMTP")
    def test_send_failure_returns_false(self, mock_smtp_class):
        mock_smtp_class.side_effect = OSError("connection refused")
        sender = EmailSender(_configured())
        assert sender.send_alert("r", "low", "m") is False


class TestEmailChannel:
    def _channel(self, frequency="immediate", now=1000.0):
        config = _configured()
        config["notifications"]["email"]["frequency"] = frequency
        clock = MagicMock(return_value=now)
        channel = EmailChannel(config, clock=clock)
        channel.sender = MagicMock()
        channel.sender.is_configured.return_value = True
        channel.sender.send_alert.return_value = True
        return channel, clock

    def test_disabled_channel_does_nothing(self):
        channel, _ = self._channel()
        channel.enabled = False
        assert channel.send(_alert()) is False
        channel.sender.send_alert.assert_not_called()

    def test_send_passes_event_fields(self):
        channel, _ = self._channel()
        alert = _alert()
        assert channel.send(alert) is True
        channel.sender.send_alert.assert_called_once_with(
            rule_name="Temperature Too High",
            severity="high",
            message="Temperature above 28°C threshold (29.2°C)",
            sensor_value=29.2,
            sensor="Temperature",
            fired_at=alert.timestamp,
        )

    def test_immediate_is_never_rate_limited(self):
        channel, _ = self._channel()
        channel.send(_alert())
        channel.send(_alert())
        assert channel.sender.send_alert.call_count == 2

    def test_hourly_frequency_limits_sends(self):
        channel, clock = self._channel(frequency="hourly")
        assert channel.send(_alert()) is True
        clock.return_value = 1000.0 + 1800
        assert channel.send(_alert()) is False
        clock.return_value = 1000.0 + 3600
        assert channel.send(_alert()) is True
        assert channel.sender.send_alert.call_count == 2

    def test_failed_send_does_not_start_interval(self):
        channel, _ = self._channel(frequency="daily")
        channel.sender.send_alert.return_value = False
        channel.send(_alert())
        channel.sender.send_alert.return_value = True
        assert channel.send(_alert()) is True
