"""
SMTP delivery for Farm Monitor alert emails.

One email per alert event, sent as multipart/alternative with a plain-text
body and a small HTML card. Credentials come from the environment first
(FARM_MONITOR_SMTP_USER / FARM_MONITOR_SMTP_PASS), then from
notifications.email in the config file.
"""
import os
import ssl
import smtplib
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate
from html import escape

logger = logging.getLogger("farmmonitor.notifications.email_sender")

_SEVERITY_COLORS = {
    "critical": "#D32F2F",
    "high": "#F57C00",
    "medium": "#FBC02D",
    "low": "#1976D2",
}

_CARD = """\
<div style="font-family: system-ui, sans-serif; max-width: 520px; margin: 0 auto;
            padding: 20px; background: #FFFFFF; color: #1E272E;">
  <h2 style="color: #2E7D32; margin-top: 0;">Farm Alert</h2>
  <div style="background: #F1F8E9; padding: 16px; border-left: 4px solid {color};">
    <h3 style="margin-top: 0; color: {color};">{severity}: {rule_name}</h3>
    <p>{message}</p>
    {details}
  </div>
  <p style="color: #636E72; font-size: 12px;">Sent automatically by Farm Monitor.</p>
</div>
"""


class EmailSender:
    def __init__(self, config: dict):
        email_config = config.get("notifications", {}).get("email", {})
        self.smtp_host = email_config.get("smtp_host", "smtp.gmail.com")
        self.smtp_port = email_config.get("smtp_port", 587)
        self.use_tls = email_config.get("use_tls", True)
        self.timeout = email_config.get("timeout", 30)
        self.from_address = email_config.get("from_address", "")
        self.from_name = email_config.get("from_name", "Farm Monitor")
        # the operator's address from the notification settings
        self.to_address = email_config.get("address", "")

        self.username = os.environ.get("FARM_MONITOR_SMTP_USER", email_config.get("smtp_username", ""))
        self.password = os.environ.get("FARM_MONITOR_SMTP_PASS", email_config.get("smtp_password", ""))

    def is_configured(self) -> bool:
        return all([self.smtp_host, self.from_address, self.to_address,
                    self.username, self.password])

    def send_alert(
        self,
        rule_name: str,
        severity: str,
        message: str,
        sensor_value: float = None,
        sensor: str = None,
        fired_at=None,
    ) -> bool:
        """Email one alert. Returns False when unconfigured or the SMTP exchange fails."""
        if not self.is_configured():
            return False

        details = []
        if sensor:
            details.append(("Sensor", sensor))
        if sensor_value is not None:
            details.append(("Reading", sensor_value))
        if fired_at is not None:
            details.append(("Fired", fired_at.strftime("%Y-%m-%d %H:%M:%S UTC")))

        sev = severity.upper()
        text = f"{sev}: {rule_name}\n{message}\n" + "".join(f"{k}: {v}\n" for k, v in details)
        html = _CARD.format(
            color=_SEVERITY_COLORS.get(severity.lower(), "#FBC02D"),
            severity=sev,
            rule_name=escape(rule_name),
            message=escape(message),
            details="".join(f'<p style="color: #888;">{k}: {escape(str(v))}</p>' for k, v in details),
        )
        return self._send(self._compose(f"[{sev}] Farm Monitor: {rule_name}", text, html))

    def _compose(self, subject, text, html):
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.from_name, self.from_address))
        msg["To"] = self.to_address
        msg["Subject"] = subject
        msg["Date"] = formatdate(localtime=True)
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    def _send(self, msg: MIMEMultipart) -> bool:
        try:
            context = ssl.create_default_context()
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                server.ehlo()
                if self.use_tls:
                    server.starttls(context=context)
                    server.ehlo()
                server.login(self.username, self.password)
                server.send_message(msg)
            logger.info(f"Alert email sent to {self.to_address}: {msg['Subject']}")
            return True
        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP authentication failed. Check FARM_MONITOR_SMTP_USER/PASS.")
            return False
        except smtplib.SMTPRecipientsRefused:
            logger.error(f"Recipient refused: {self.to_address}")
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Alert email failed: {e}")
            return False
