from .account_repository import AsyncPGAccountRepository
from .token_repository import AsyncPGTokenRepository

__all__ = ["AsyncPGAccountRepository", "AsyncPGTokenRepository"]
