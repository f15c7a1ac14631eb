"""Default delivery of password reset and verification links."""

import logging

from ..entities.account import Account

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Notifier that only logs; the raw token is never written to the log."""

    async def send_password_reset(self, account: Account, token: str) -> None:
        logger.info(f"Password reset requested for account {account.id} (token ...{token[-4:]})")

    async def send_email_verification(self, account: Account, token: str) -> None:
        logger.info(f"Email verification requested for account {account.id} (token ...{token[-4:]})")
