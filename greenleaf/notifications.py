"""Outbound email used for password-reset codes."""
import logging

import resend
from starlette.concurrency import run_in_threadpool

from greenleaf.shared.exceptions import DeliveryException
from greenleaf.shared.utils import Settings

logger = logging.getLogger(__name__)


class Mailer:
    async def send(self, to: str, subject: str, text: str) -> None:
        raise NotImplementedError


class LogMailer(Mailer):
    """Used when no email provider is configured; records that a mail was due."""

    async def send(self, to: str, subject: str, text: str) -> None:
        logger.info(f"Email not sent (no provider configured): {subject!r} to {to}")


class ResendMailer(Mailer):
    def __init__(self, api_key: str, sender: str):
        self.api_key = api_key
        self.sender = sender

    async def send(self, to: str, subject: str, text: str) -> None:
        payload = {"from": self.sender, "to": [to], "subject": subject, "text": text}
        resend.api_key = self.api_key
        try:
            # the SDK is synchronous
            response = await run_in_threadpool(resend.Emails.send, payload)
        except Exception as exc:
            logger.error(f"Resend delivery to {to} failed: {exc}")
            raise DeliveryException()
        if not isinstance(response, dict) or not response.get("id"):
            logger.error(f"Resend rejected mail to {to}: {response}")
            raise DeliveryException()


def build_mailer(config: Settings) -> Mailer:
    if config.RESEND_API_KEY:
        return ResendMailer(config.RESEND_API_KEY, config.MAIL_FROM)
    return LogMailer()
