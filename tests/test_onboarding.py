import random
from datetime import date, timedelta

import pytest

from conftest import insert_account
from database.session import init_db
from models.notification import Notification
from models.progress import ProgressRecord
from models.session import TherapySession
from services.onboarding_service import OnboardingInitializer


@pytest.fixture
def factory(services):
    init_db(services.engine)
    return services.session_factory


class TestOnboardingInitializer:
    @pytest.mark.parametrize("seed", range(5))
    def test_patient_seed(self, services, factory, seed: int) -> None:
        account_id = insert_account(services, f"p{seed}@x.com")

        OnboardingInitializer(factory, rng=random.Random(seed)).initialize(account_id, "patient")

        with factory() as db:
            rec = db.query(ProgressRecord).filter_by(owner_id=account_id).one()
            assert 10 <= rec.overall_progress < 30
            assert rec.completed_sessions == 0
            assert rec.total_sessions == 21
            assert rec.next_milestone == "Complete initial assessment"

            [score] = rec.wellness_scores
            assert 7 <= score.wellness <= 9
            assert 7 <= score.energy <= 9
            assert 8 <= score.sleep <= 10

            notifications = db.query(Notification).filter_by(owner_id=account_id).all()
            assert [(n.title, n.kind, n.priority) for n in notifications] == [
                ("Welcome to AyurSutra!", "general", "high")
            ]

            sessions = (
                db.query(TherapySession)
                .filter_by(owner_id=account_id)
                .order_by(TherapySession.scheduled_date)
                .all()
            )
            today = date.today()
            assert [(s.name, s.therapy_type, s.scheduled_date, s.scheduled_time, s.duration_minutes) for s in sessions] == [
                ("Initial Consultation", "other", today + timedelta(days=1), "10:00 AM", 45),
                ("Abhyanga Therapy", "abhyanga", today + timedelta(days=2), "2:00 PM", 60),
            ]
            assert {s.status for s in sessions} == {"scheduled"}

    def test_practitioner_gets_welcome_only(self, services, factory) -> None:
        account_id = insert_account(services, "doc@x.com", account_type="practitioner")

        OnboardingInitializer(factory).initialize(account_id, "practitioner")

        with factory() as db:
            assert db.query(ProgressRecord).filter_by(owner_id=account_id).count() == 0
            assert db.query(TherapySession).filter_by(owner_id=account_id).count() == 0
            titles = [n.title for n in db.query(Notification).filter_by(owner_id=account_id)]
            assert titles == ["Welcome, Practitioner!"]

    def test_second_run_keeps_existing_state(self, services, factory) -> None:
        account_id = insert_account(services, "again@x.com")
        initializer = OnboardingInitializer(factory)

        initializer.initialize(account_id, "patient")
        initializer.initialize(account_id, "patient")

        with factory() as db:
            assert db.query(ProgressRecord).filter_by(owner_id=account_id).count() == 1
            assert db.query(TherapySession).filter_by(owner_id=account_id).count() == 2
            assert db.query(Notification).filter_by(owner_id=account_id).count() == 1
