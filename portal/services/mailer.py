import logging
from typing import Any, Dict, List, Optional

import requests

from portal.core.config import settings
from portal.core.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

EMAIL_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: Arial, sans-serif; margin: 0; padding: 0; background-color: #f4f4f4; }}
    .email-container {{ background-color: #ffffff; max-width: 600px; margin: 0 auto;
      border: 1px solid #e0e0e0; border-radius: 10px; overflow: hidden; }}
    .email-header {{ background-color: #000000; padding: 20px; text-align: center; }}
    .email-header img {{ max-width: 200px; }}
    .email-body {{ padding: 20px; color: #333333; }}
    h1 {{ font-size: 24px; color: #333333; }}
    p {{ font-size: 16px; line-height: 1.5; }}
    .button {{ display: inline-block; padding: 12px 24px; margin: 20px 0; color: #fff;
      background-color: #000000; border-radius: 5px; text-decoration: none; font-weight: bold; }}
  </style>
</head>
<body>
  <div class="email-container">
    <div class="email-header">
      <img src="{logo_url}" alt="{logo_alt}">
    </div>
    <div class="email-body">
      {body}
    </div>
  </div>
</body>
</html>
"""


def render_email_template(body: str, logo_url: Optional[str] = None, logo_alt: Optional[str] = None) -> str:
    """Wraps an HTML fragment in the shared branded layout."""
    return EMAIL_TEMPLATE.format(
        body=body,
        logo_url=logo_url or settings.mail.logo_url,
        logo_alt=logo_alt or settings.app_name,
    )


class MailjetMailer:
    """
    Sends transactional email through the Mailjet v3.1 Send API.

    Every failure (missing credentials, network error, non-2xx reply) is raised
    as EmailDeliveryError so callers can decide whether it matters.
    """

    def __init__(self, mail_settings=None):
        self.settings = mail_settings or settings.mail

    def build_message(
        self,
        to: str,
        subject: str,
        body: str,
        reply_to: Optional[str] = None,
        cc: Optional[List[str]] = None,
        from_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        message: Dict[str, Any] = {
            "From": {"Email": from_email or self.settings.from_email, "Name": self.settings.from_name},
            "To": [{"Email": to}],
            "Subject": subject,
            "HTMLPart": render_email_template(body),
        }
        if reply_to:
            message["ReplyTo"] = {"Email": reply_to}
        recipients = [address for address in (cc or []) if address and address != to]
        if recipients:
            message["Cc"] = [{"Email": address} for address in recipients]
        return message

    def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        reply_to: Optional[str] = None,
        cc: Optional[List[str]] = None,
        from_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not to:
            raise EmailDeliveryError("No recipient address")
        if not self.settings.mailjet_api_key or not self.settings.mailjet_api_secret:
            raise EmailDeliveryError("Mailjet API keys are not configured. Set MJ_APIKEY_PUBLIC and MJ_APIKEY_PRIVATE.")

        payload = {"Messages": [self.build_message(to, subject, body, reply_to, cc, from_email)]}
        try:
            response = requests.post(
                self.settings.mailjet_url,
                json=payload,
                auth=(self.settings.mailjet_api_key, self.settings.mailjet_api_secret),
                timeout=self.settings.timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Mailjet send failed for {to}: {e}", extra={"subject": subject})
            raise EmailDeliveryError(f"Failed to send email: {e}") from e

        logger.info(f"Email sent to {to}", extra={"subject": subject, "cc_count": len(cc or [])})
        return response.json()


_mailer = MailjetMailer()


def get_mailer() -> MailjetMailer:
    """FastAPI dependency; overridden with an in-memory fake under test."""
    return _mailer
