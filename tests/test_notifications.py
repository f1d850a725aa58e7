"""Tests for in-app and SMS alert channels."""
import json
from unittest.mock import patch, MagicMock

import requests

from models.alerts import AlertEvent
from models.enums import Channel, Severity
from notifications.sms_sender import SmsSender
from alerts.channels import AlertChannel, InAppChannel, SmsChannel, build_channel_handlers


def _alert(severity=Severity.CRITICAL):
    return AlertEvent(id="7", rule_id="humidity_critical", rule_name="Humidity Critical",
                      sensor="Humidity", sensor_value=45, severity=severity,
                      message="Humidity outside 50-85% range (45%)",
                      channels=frozenset(Channel))


def _sms_config(**overrides):
    cfg = {"enabled": True, "number": "+1 (555) 123-4567",
           "gateway_url": "https://sms.example.com/send", "api_key": "k"}
    cfg.update(overrides)
    return {"notifications": {"sms": cfg}}


class TestInAppChannel:
    def _channel(self, tmp_path, **cfg):
        settings = {"feed_path": str(tmp_path / "feed" / "alerts.jsonl")}
        settings.update(cfg)
        console = MagicMock()
        return InAppChannel({"notifications": {"in_app": settings}}, console=console), console

    def test_prints_and_appends_feed(self, tmp_path):
        channel, console = self._channel(tmp_path)
        assert channel.send(_alert()) is True
        assert channel.send(_alert(Severity.LOW)) is True

        printed = console.print.call_args_list[0][0][0]
        assert "[CRITICAL] Humidity Critical" in printed
        lines = (tmp_path / "feed" / "alerts.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        entry = json.loads(lines[0])
        assert entry["id"] == "7"
        assert entry["status"] == "active"

    def test_bell_only_for_critical_with_sound(self, tmp_path):
        channel, console = self._channel(tmp_path)
        channel.send(_alert(Severity.HIGH))
        console.bell.assert_not_called()
        channel.send(_alert(Severity.CRITICAL))
        console.bell.assert_called_once()

    def test_sound_off(self, tmp_path):
        channel, console = self._channel(tmp_path, sound=False)
        channel.send(_alert())
        console.bell.assert_not_called()

    def test_disabled(self, tmp_path):
        channel, console = self._channel(tmp_path, enabled=False)
        assert channel.send(_alert()) is False
        console.print.assert_not_called()

    def test_satisfies_protocol(self, tmp_path):
        channel, _ = self._channel(tmp_path)
        assert isinstance(channel, AlertChannel)


class TestSmsSender:
    def test_not_configured(self):
        assert SmsSender({}).is_configured() is False
        assert SmsSender({}).send("hi") is False

    @patch("notifications.sms_sender.requests.post")
    def test_send_posts_json(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)
        with patch.dict("os.environ", {}, clear=True):
            sender = SmsSender(_sms_config())
            assert sender.send("hello") is True

        args, kwargs = mock_post.call_args
        assert args[0] == "https://sms.example.com/send"
        assert kwargs["json"] == {"to": "+1 (555) 123-4567", "message": "hello"}
        assert kwargs["headers"] == {"Authorization": "Bearer k"}

    @patch("notifications.sms_sender.requests.post")
    def test_gateway_error_returns_false(self, mock_post):
        mock_post.return_value.raise_for_status.side_effect = requests.HTTPError("503")
        assert SmsSender(_sms_config()).send("hello") is False

    @patch("notifications.sms_sender.requests.post")
    def test_network_error_returns_false(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("down")
        assert SmsSender(_sms_config()).send("hello") is False

    def test_api_key_from_env(self):
        with patch.dict("os.environ", {"FARM_MONITOR_SMS_API_KEY": "env-key"}):
            assert SmsSender(_sms_config()).api_key == "env-key"


class TestSmsChannel:
    def test_send_formats_text(self):
        channel = SmsChannel(_sms_config(), clock=MagicMock(return_value=0.0))
        channel.sender = MagicMock()
        channel.sender.is_configured.return_value = True
        channel.sender.send.return_value = True

        assert channel.send(_alert()) is True
        text = channel.sender.send.call_args[0][0]
        assert text == "[CRITICAL] Humidity Critical: Humidity outside 50-85% range (45%)"

    def test_disabled(self):
        channel = SmsChannel(_sms_config(enabled=False))
        channel.sender = MagicMock()
        assert channel.send(_alert()) is False
        channel.sender.send.assert_not_called()


class TestBuildChannelHandlers:
    def test_only_enabled_channels(self):
        config = {"notifications": {
            "email": {"enabled": False},
            "sms": {"enabled": True, "number": "1", "gateway_url": "http://x"},
            "in_app": {"enabled": True},
        }}
        handlers = build_channel_handlers(config, console=MagicMock())
        assert set(handlers) == {Channel.SMS, Channel.IN_APP}
        assert isinstance(handlers[Channel.SMS], SmsChannel)
