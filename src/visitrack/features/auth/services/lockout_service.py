"""Account lockout after repeated failed logins."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ....config.constants import LOCK_REASON_FAILED_ATTEMPTS, LockState
from ....core.value_objects import AccountId
from ..entities.account import Account, LockoutUpdate
from ..entities.protocols import AccountRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockoutPolicy:
    max_failed_attempts: int = 5
    lock_duration: timedelta = timedelta(minutes=30)


class LockoutService:
    """Lockout state machine.

    States: ``ACTIVE`` → ``LOCKED`` once the failure counter reaches the
    threshold, ``LOCKED`` → ``LOCK_EXPIRED`` when ``locked_until`` passes,
    and ``LOCK_EXPIRED`` → ``ACTIVE`` lazily on the next login attempt.
    All writes go through the account repository and are awaited.
    """

    def __init__(self, accounts: AccountRepository, policy: LockoutPolicy = LockoutPolicy()):
        self.accounts = accounts
        self.policy = policy

    def evaluate(self, account: Account, now: datetime) -> LockState:
        if not account.is_locked:
            return LockState.ACTIVE
        if account.locked_until is not None and account.locked_until < now:
            return LockState.LOCK_EXPIRED
        return LockState.LOCKED

    async def release_if_expired(self, account: Account, now: datetime) -> LockState:
        """Clear an expired lock in the store and on ``account``."""
        state = self.evaluate(account, now)
        if state is not LockState.LOCK_EXPIRED:
            return state

        await self.accounts.update_lockout_state(account.id, LockoutUpdate.cleared())
        _apply(account, LockoutUpdate.cleared())
        logger.info(f"Lock expired and released for account {account.id}")
        return LockState.ACTIVE

    async def register_failure(self, account: Account, now: datetime) -> LockState:
        """Count a failed attempt, locking the account at the threshold."""
        attempts = await self.accounts.record_failed_login(account.id, now)
        account.failed_login_attempts = attempts
        account.last_failed_login_at = now

        if attempts < self.policy.max_failed_attempts:
            return LockState.ACTIVE

        update = LockoutUpdate(
            is_locked=True,
            failed_login_attempts=attempts,
            lock_reason=LOCK_REASON_FAILED_ATTEMPTS,
            locked_at=now,
            locked_until=now + self.policy.lock_duration,
        )
        await self.accounts.update_lockout_state(account.id, update)
        _apply(account, update)
        logger.warning(
            f"Account {account.id} locked after {attempts} failed attempts "
            f"until {update.locked_until.isoformat()}"
        )
        return LockState.LOCKED

    async def register_success(self, account: Account, now: datetime) -> None:
        """Reset the counter and record the successful login."""
        await self.accounts.update_lockout_state(account.id, LockoutUpdate.cleared())
        _apply(account, LockoutUpdate.cleared())
        await self.accounts.update_activity(account.id, now, successful_login=True)
        account.last_successful_login_at = now
        account.last_activity_at = now

    async def reset(self, account_id: AccountId) -> None:
        """Administrative unlock."""
        await self.accounts.update_lockout_state(account_id, LockoutUpdate.cleared())
        logger.info(f"Lockout state reset for account {account_id}")


def _apply(account: Account, update: LockoutUpdate) -> None:
    account.is_locked = update.is_locked
    account.failed_login_attempts = update.failed_login_attempts
    account.lock_reason = update.lock_reason
    account.locked_at = update.locked_at
    account.locked_until = update.locked_until
