import threading
import time

import pytest

from services.rate_limiter import AuthRateLimiter


class TestAuthRateLimiter:
    @pytest.fixture
    def limiter(self) -> AuthRateLimiter:
        return AuthRateLimiter(window_ms=900_000, max_attempts=5)

    def test_sixth_attempt_rejected(self, limiter: AuthRateLimiter) -> None:
        results = [limiter.hit("10.0.0.1") for _ in range(6)]

        assert [r.allowed for r in results] == [True] * 5 + [False]
        assert [r.remaining for r in results[:5]] == [4, 3, 2, 1, 0]
        assert 0 < results[5].retry_after <= 900

    def test_rejected_attempts_are_not_counted(self, limiter: AuthRateLimiter) -> None:
        for _ in range(8):
            limiter.hit("10.0.0.1")

        assert limiter.attempts("10.0.0.1") == 5

    def test_rejected_attempts_do_not_extend_window(self) -> None:
        limiter = AuthRateLimiter(window_ms=1000, max_attempts=5)
        for _ in range(5):
            limiter.hit("10.0.0.1")
        time.sleep(0.5)
        assert limiter.hit("10.0.0.1").allowed is False

        time.sleep(0.7)

        assert limiter.hit("10.0.0.1").allowed is True

    def test_window_slides(self) -> None:
        limiter = AuthRateLimiter(window_ms=2000, max_attempts=5)
        limiter.hit("10.0.0.1")
        time.sleep(1.0)
        for _ in range(4):
            limiter.hit("10.0.0.1")
        assert limiter.hit("10.0.0.1").allowed is False

        # The first attempt ages out; the other four are still in the window.
        time.sleep(1.1)

        assert limiter.attempts("10.0.0.1") == 4
        assert limiter.hit("10.0.0.1").allowed is True
        assert limiter.hit("10.0.0.1").allowed is False

    def test_origins_are_independent(self, limiter: AuthRateLimiter) -> None:
        for _ in range(5):
            limiter.hit("10.0.0.1")

        assert limiter.hit("10.0.0.1").allowed is False
        assert limiter.hit("10.0.0.2").allowed is True

    def test_window_rounds_up_to_whole_seconds(self) -> None:
        assert AuthRateLimiter(window_ms=1500).item.get_expiry() == 2
        assert AuthRateLimiter(window_ms=900_000).item.get_expiry() == 900

    def test_concurrent_hits_never_exceed_limit(self) -> None:
        limiter = AuthRateLimiter(window_ms=60_000, max_attempts=5)
        allowed = []
        barrier = threading.Barrier(20)

        def attempt() -> None:
            barrier.wait()
            allowed.append(limiter.hit("10.0.0.1").allowed)

        threads = [threading.Thread(target=attempt) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert allowed.count(True) == 5

    def test_invalid_configuration(self) -> None:
        with pytest.raises(ValueError):
            AuthRateLimiter(window_ms=0)
