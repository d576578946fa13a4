from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from core.config import Settings
from database.session import create_db_engine, create_session_factory
from services.auth_service import PasswordHasher, TokenService
from services.dashboard_service import DashboardService
from services.identity_service import IdentityService
from services.notification_service import NotificationService
from services.onboarding_service import OnboardingInitializer
from services.progress_service import ProgressService
from services.rate_limiter import AuthRateLimiter
from services.session_service import SessionLifecycleEngine


@dataclass
class ServiceContainer:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    hasher: PasswordHasher
    tokens: TokenService
    rate_limiter: AuthRateLimiter
    onboarding: OnboardingInitializer
    identity: IdentityService
    sessions: SessionLifecycleEngine
    progress: ProgressService
    notifications: NotificationService
    dashboard: DashboardService


def build_services(settings: Settings) -> ServiceContainer:
    engine = create_db_engine(settings)
    session_factory = create_session_factory(engine)

    hasher = PasswordHasher(rounds=settings.password_hash_rounds)
    tokens = TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        default_ttl=timedelta(days=settings.access_token_ttl_days),
    )
    onboarding = OnboardingInitializer(session_factory)

    return ServiceContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        hasher=hasher,
        tokens=tokens,
        rate_limiter=AuthRateLimiter(
            window_ms=settings.auth_rate_limit_window_ms,
            max_attempts=settings.auth_rate_limit_max_attempts,
        ),
        onboarding=onboarding,
        identity=IdentityService(
            session_factory,
            hasher=hasher,
            tokens=tokens,
            onboarding=onboarding,
            remember_me_ttl=timedelta(days=settings.remember_me_ttl_days),
        ),
        sessions=SessionLifecycleEngine(session_factory),
        progress=ProgressService(session_factory),
        notifications=NotificationService(session_factory),
        dashboard=DashboardService(session_factory),
    )
