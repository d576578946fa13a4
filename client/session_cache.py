import time
from typing import Any

from jose import JWTError, jwt  # type: ignore
import structlog

from client.storage import FileStorage

logger = structlog.get_logger(__name__)

TOKEN_KEY = "ayursutra_token"
ACCOUNT_KEY = "ayursutra_user"


class SessionCache:
    """
    Client copy of the signed-in identity: the bearer token and the account
    snapshot the server returned with it.

    store() and clear() are the only mutators. Both write the two keys
    together and can be repeated safely.
    """

    def __init__(self, storage: FileStorage) -> None:
        self._storage = storage

    @property
    def token(self) -> str | None:
        return self._storage.get(TOKEN_KEY)

    @property
    def account(self) -> dict[str, Any] | None:
        return self._storage.get(ACCOUNT_KEY)

    @property
    def account_type(self) -> str | None:
        account = self.account
        return account.get("account_type") if account else None

    def store(self, token: str, account: dict[str, Any]) -> None:
        self._storage.set_many({TOKEN_KEY: token, ACCOUNT_KEY: account})

    def clear(self) -> None:
        self._storage.remove_many((TOKEN_KEY, ACCOUNT_KEY))

    def is_valid(self, now: float | None = None) -> bool:
        """
        Check the token's expiry locally, without asking the server.
        A malformed or expired token clears the cache.
        """
        token = self.token
        if not token:
            self.clear()
            return False
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            logger.info("cached_token_malformed")
            self.clear()
            return False

        exp = claims.get("exp")
        current = time.time() if now is None else now
        if not isinstance(exp, (int, float)) or exp <= current:
            logger.info("cached_token_expired")
            self.clear()
            return False
        return True

    def is_authenticated(self) -> bool:
        return self.account is not None and self.is_valid()
