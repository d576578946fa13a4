from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
import structlog

from core.errors import DuplicateEmail, Forbidden, InvalidCredentials, Unauthorized
from models.account import Account
from schemas.auth import (
    AccountOut,
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    SignupRequest,
    WellnessMetrics,
)
from services.auth_service import PasswordHasher, TokenExpired, TokenMalformed, TokenService, TokenSignatureInvalid
from services.onboarding_service import OnboardingInitializer

logger = structlog.get_logger(__name__)

# Never writable through a profile update.
PROTECTED_FIELDS = frozenset(
    {
        "password",
        "hashed_password",
        "email",
        "id",
        "_id",
        "created_at",
        "updated_at",
        "account_type",
        "is_active",
        "is_email_verified",
        "last_login",
    }
)
MUTABLE_FIELDS = ("full_name", "phone", "profile", "practitioner_info")


def to_wellness_metrics(account: Account) -> WellnessMetrics:
    return WellnessMetrics(
        sleep_quality=int(account.sleep_quality or 0),
        energy_level=int(account.energy_level or 0),
        overall_wellness=int(account.overall_wellness or 0),
        last_updated=account.wellness_updated_at.isoformat() if account.wellness_updated_at else None,
    )


def to_account_out(account: Account) -> AccountOut:
    profile = dict(account.profile or {})
    profile["wellness_metrics"] = to_wellness_metrics(account).model_dump()
    return AccountOut(
        id=str(account.id),
        email=account.email,
        full_name=account.full_name,
        phone=account.phone,
        account_type=account.account_type,
        is_active=bool(account.is_active),
        is_email_verified=bool(account.is_email_verified),
        last_login=account.last_login.isoformat() if account.last_login else None,
        profile=profile,
        practitioner_info=account.practitioner_info if account.account_type == "practitioner" else None,
        created_at=account.created_at.isoformat(),
        updated_at=account.updated_at.isoformat(),
    )


class IdentityService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        hasher: PasswordHasher,
        tokens: TokenService,
        onboarding: OnboardingInitializer,
        remember_me_ttl: timedelta,
    ) -> None:
        self._session_factory = session_factory
        self._hasher = hasher
        self._tokens = tokens
        self._onboarding = onboarding
        self._remember_me_ttl = remember_me_ttl

    def signup(self, req: SignupRequest) -> AuthResponse:
        email = req.email
        account_type = req.account_type

        with self._session_factory() as db:
            try:
                with db.begin():
                    if db.query(Account.id).filter(Account.email == email).first():
                        raise DuplicateEmail()
                    profile = req.profile.model_dump(mode="json", exclude_unset=True) if req.profile else {}
                    account = Account(
                        email=email,
                        full_name=req.full_name,
                        phone=req.phone,
                        account_type=account_type,
                        hashed_password=self._hasher.hash(req.password),
                        profile=profile,
                        practitioner_info=dict(req.practitioner_info or {}) if account_type == "practitioner" else None,
                    )
                    db.add(account)
            except IntegrityError as e:
                # Lost an insert race on the unique email index.
                raise DuplicateEmail() from e
            account_id = account.id

        logger.info("account_created", account_id=account_id, account_type=account_type)
        self._run_onboarding(account_id, account_type)

        token = self._tokens.issue(account_id, email, account_type)
        account_out = self._stamp_login(account_id)
        return AuthResponse(message="User registered successfully", account=account_out, token=token)

    def login(self, req: LoginRequest) -> AuthResponse:
        email = req.email
        with self._session_factory() as db:
            account = db.query(Account).filter(Account.email == email, Account.is_active.is_(True)).first()
            if account is None:
                self._hasher.dummy_verify()
                logger.info("login_failed", reason="unknown_email")
                raise InvalidCredentials()
            if not self._hasher.verify(req.password, account.hashed_password):
                logger.info("login_failed", reason="bad_password", account_id=account.id)
                raise InvalidCredentials()
            account_id, account_type = account.id, account.account_type

        ttl = self._remember_me_ttl if req.remember_me else None
        token = self._tokens.issue(account_id, email, account_type, ttl=ttl)
        account_out = self._stamp_login(account_id)
        logger.info("login_succeeded", account_id=account_id, remember_me=req.remember_me)
        return AuthResponse(message="Login successful", account=account_out, token=token)

    def get_current_account(self, token: str) -> AccountOut:
        try:
            claims = self._tokens.verify(token)
        except TokenSignatureInvalid as e:
            raise Forbidden("Invalid or expired token") from e
        except TokenExpired as e:
            raise Unauthorized("Token expired") from e
        except TokenMalformed as e:
            raise Unauthorized("Invalid token") from e

        with self._session_factory() as db:
            account = db.get(Account, claims.account_id)
            if account is None or not account.is_active:
                raise Unauthorized()
            return to_account_out(account)

    def update_profile(self, account_id: str, patch: ProfileUpdate) -> AccountOut:
        stripped = sorted(k for k in (patch.model_extra or {}) if k in PROTECTED_FIELDS)
        if stripped:
            logger.warning("profile_update_protected_fields_ignored", account_id=account_id, fields=stripped)
        # Explicit nulls leave the stored value alone.
        changes = {k: getattr(patch, k) for k in MUTABLE_FIELDS if getattr(patch, k) is not None}

        with self._session_factory() as db, db.begin():
            account = db.get(Account, account_id)
            if account is None or not account.is_active:
                raise Unauthorized()

            if "full_name" in changes:
                account.full_name = changes["full_name"]
            if "phone" in changes:
                account.phone = changes["phone"]
            if "profile" in changes:
                incoming = changes["profile"].model_dump(mode="json", exclude_unset=True)
                account.profile = {**(account.profile or {}), **incoming}
            if "practitioner_info" in changes and account.account_type == "practitioner":
                account.practitioner_info = {**(account.practitioner_info or {}), **changes["practitioner_info"]}
            account.updated_at = datetime.utcnow()

            db.flush()
            logger.info("profile_updated", account_id=account_id, fields=sorted(changes))
            return to_account_out(account)

    def change_password(self, account_id: str, req: ChangePasswordRequest) -> None:
        with self._session_factory() as db, db.begin():
            account = db.get(Account, account_id)
            if account is None or not account.is_active:
                raise Unauthorized()
            if not self._hasher.verify(req.current_password, account.hashed_password):
                raise InvalidCredentials("Current password is incorrect")
            account.hashed_password = self._hasher.hash(req.new_password)
            account.updated_at = datetime.utcnow()
        logger.info("password_changed", account_id=account_id)

    def _run_onboarding(self, account_id: str, account_type: str) -> None:
        try:
            self._onboarding.initialize(account_id, account_type)
        except Exception:
            # The account is already committed; a missing progress record is rebuilt lazily.
            logger.exception("onboarding_failed", account_id=account_id, account_type=account_type)

    def _stamp_login(self, account_id: str) -> AccountOut:
        with self._session_factory() as db, db.begin():
            account = db.get(Account, account_id)
            account.last_login = datetime.utcnow()
            db.flush()
            return to_account_out(account)
