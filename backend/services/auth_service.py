from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt  # type: ignore
from passlib.context import CryptContext  # type: ignore
import structlog

logger = structlog.get_logger(__name__)


class PasswordHasher:
    """
    Salted one-way hashing of account passwords.
    PBKDF2 keeps us free of native bcrypt build issues; rounds are configurable.
    """

    def __init__(self, rounds: int) -> None:
        self._context = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        if not isinstance(password, str) or not password:
            raise TypeError("Password must be a non-empty string.")
        return self._context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        try:
            return self._context.verify(password, hashed)
        except (ValueError, TypeError):
            # Unrecognised or corrupted digest.
            logger.warning("password_hash_unreadable")
            return False

    def dummy_verify(self) -> None:
        # Same CPU cost as a real verify, for logins against unknown emails.
        self._context.dummy_verify()


class InvalidToken(Exception):
    pass


class TokenMalformed(InvalidToken):
    pass


class TokenSignatureInvalid(InvalidToken):
    pass


class TokenExpired(InvalidToken):
    pass


@dataclass(frozen=True)
class TokenClaims:
    account_id: str
    email: str
    account_type: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    def __init__(self, secret: str, algorithm: str, default_ttl: timedelta) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self.default_ttl = default_ttl

    def issue(self, account_id: str, email: str, account_type: str, ttl: timedelta | None = None) -> str:
        now = datetime.now(timezone.utc)
        exp = now + (ttl or self.default_ttl)
        payload: dict[str, Any] = {
            "sub": account_id,
            "email": email,
            "account_type": account_type,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        # Structure first, so a garbled token is not reported as a signature failure.
        try:
            jwt.get_unverified_claims(token)
        except JWTError as e:
            raise TokenMalformed("Token is malformed.") from e

        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpired("Token has expired.") from e
        except JWTError as e:
            raise TokenSignatureInvalid("Token signature verification failed.") from e

        sub = payload.get("sub")
        exp = payload.get("exp")
        if not sub or exp is None:
            raise TokenMalformed("Token is missing required claims.")

        return TokenClaims(
            account_id=str(sub),
            email=str(payload.get("email", "")),
            account_type=str(payload.get("account_type", "")),
            issued_at=datetime.fromtimestamp(int(payload.get("iat", exp)), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(exp), tz=timezone.utc),
        )
