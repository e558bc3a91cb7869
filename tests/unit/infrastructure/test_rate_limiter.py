"""
Tests unitaires pour le RateLimiter et les storages de fenetres.
"""

import threading

from api_cache.domain.ports.rate_limit_storage import RateLimitWindow
from api_cache.infrastructure.adapters import MemoryRateLimitStorage, SqlRateLimitStorage
from api_cache.infrastructure.persistence import DatabaseManager
from api_cache.infrastructure.rate_limiting import UNLIMITED, RateLimitConfig, RateLimiter


# ============================================================
# Tests MemoryRateLimitStorage
# ============================================================


class TestMemoryRateLimitStorage:
    """Tests pour MemoryRateLimitStorage."""

    def test_get_missing(self) -> None:
        assert MemoryRateLimitStorage().get("absent") is None

    def test_set_and_get(self) -> None:
        storage = MemoryRateLimitStorage()
        storage.set("k", RateLimitWindow(attempts=3, window_start=10.0))

        window = storage.get("k")

        assert window.attempts == 3
        assert window.window_start == 10.0

    def test_returns_copies(self) -> None:
        """Test modifier la fenetre lue ne modifie pas l'etat stocke."""
        storage = MemoryRateLimitStorage()
        storage.set("k", RateLimitWindow(attempts=1, window_start=0.0))

        storage.get("k").attempts = 99

        assert storage.get("k").attempts == 1

    def test_delete(self) -> None:
        storage = MemoryRateLimitStorage()
        storage.set("k", RateLimitWindow(1, 0.0))

        assert storage.delete("k") is True
        assert storage.delete("k") is False
        assert storage.get("k") is None

    def test_clear(self) -> None:
        storage = MemoryRateLimitStorage()
        storage.set("a", RateLimitWindow(1, 0.0))
        storage.set("b", RateLimitWindow(1, 0.0))

        assert storage.clear() == 2
        assert storage.get("a") is None


class TestSqlRateLimitStorage:
    """Tests pour SqlRateLimitStorage (SQLite en memoire)."""

    def test_get_missing(self, db) -> None:
        assert SqlRateLimitStorage(db).get("absent") is None

    def test_set_overwrites(self, db) -> None:
        """Test une seule ligne par cle, derniere valeur conservee."""
        storage = SqlRateLimitStorage(db)
        storage.set("k", RateLimitWindow(attempts=1, window_start=10.0))
        storage.set("k", RateLimitWindow(attempts=4, window_start=10.0))

        window = storage.get("k")

        assert window.attempts == 4
        assert window.window_start == 10.0
        assert storage.clear() == 1

    def test_shared_between_instances(self, db) -> None:
        """Test deux storages sur la meme base voient la meme fenetre."""
        SqlRateLimitStorage(db).set("k", RateLimitWindow(2, 5.0))
        assert SqlRateLimitStorage(db).get("k").attempts == 2

    def test_delete(self, db) -> None:
        storage = SqlRateLimitStorage(db)
        storage.set("k", RateLimitWindow(1, 0.0))

        assert storage.delete("k") is True
        assert storage.delete("k") is False
        assert storage.get("k") is None

    def test_survives_restart(self, tmp_path) -> None:
        """Test le quota consomme survit a un nouveau limiteur sur la meme base."""
        url = f"sqlite:///{tmp_path / 'limits.db'}"
        limits = {"demo": RateLimitConfig(max_attempts=3, decay_seconds=60)}
        clock = lambda: 1_700_000_000.0

        first_db = DatabaseManager(url)
        try:
            assert RateLimiter(SqlRateLimitStorage(first_db), limits=limits, clock=clock).attempt("demo", 2)
        finally:
            first_db.dispose()

        second_db = DatabaseManager(url)
        try:
            limiter = RateLimiter(SqlRateLimitStorage(second_db), limits=limits, clock=clock)
            assert limiter.get_remaining_attempts("demo") == 1
            assert limiter.attempt("demo", 2) is False
        finally:
            second_db.dispose()

    def test_limiter_over_sql_storage(self, db, timer) -> None:
        limiter = RateLimiter(
            SqlRateLimitStorage(db),
            limits={"demo": RateLimitConfig(max_attempts=2, decay_seconds=60)},
            clock=timer,
        )

        assert limiter.attempt("demo") is True
        assert limiter.attempt("demo") is True
        assert limiter.attempt("demo") is False

        timer.advance(60)
        assert limiter.attempt("demo") is True


# ============================================================
# Tests RateLimiter
# ============================================================


class TestRateLimitConfig:
    """Tests pour RateLimitConfig."""

    def test_unlimited(self) -> None:
        assert RateLimitConfig(max_attempts=None).unlimited is True
        assert RateLimitConfig(max_attempts=-1).unlimited is True
        assert RateLimitConfig(max_attempts=0).unlimited is False
        assert RateLimitConfig(max_attempts=10).unlimited is False


class TestRateLimiter:
    """Tests pour RateLimiter."""

    def test_rate_limit_key(self) -> None:
        assert RateLimiter.get_rate_limit_key("demo") == "api-cache:rate-limit:demo"

    def test_fresh_client_allowed(self, rate_limiter: RateLimiter) -> None:
        assert rate_limiter.allow_request("demo") is True
        assert rate_limiter.get_remaining_attempts("demo") == 5
        assert rate_limiter.get_available_in("demo") == 0

    def test_allow_request_does_not_consume(self, rate_limiter: RateLimiter) -> None:
        """Test allow_request ne compte rien."""
        for _ in range(10):
            rate_limiter.allow_request("demo")
        assert rate_limiter.get_remaining_attempts("demo") == 5

    def test_exhaustion(self, rate_limiter: RateLimiter, timer) -> None:
        """Test refus apres max_attempts tentatives."""
        rate_limiter.increment_attempts("demo", 5)

        assert rate_limiter.allow_request("demo") is False
        assert rate_limiter.get_remaining_attempts("demo") == 0
        assert rate_limiter.get_available_in("demo") == 60

        timer.advance(20.5)
        assert rate_limiter.get_available_in("demo") == 40

    def test_remaining_never_negative(self, rate_limiter: RateLimiter) -> None:
        rate_limiter.increment_attempts("demo", 8)
        assert rate_limiter.get_remaining_attempts("demo") == 0

    def test_window_reset_after_decay(self, rate_limiter: RateLimiter, timer) -> None:
        """Test remise a zero une fois decay_seconds ecoulees."""
        rate_limiter.increment_attempts("demo", 5)

        timer.advance(59)
        assert rate_limiter.allow_request("demo") is False

        timer.advance(1)
        assert rate_limiter.allow_request("demo") is True
        assert rate_limiter.get_remaining_attempts("demo") == 5

    def test_window_opens_at_first_attempt(self, rate_limiter: RateLimiter, timer) -> None:
        """Test la fenetre demarre a la premiere tentative comptee."""
        timer.advance(100)
        rate_limiter.increment_attempts("demo")
        timer.advance(30)
        rate_limiter.increment_attempts("demo", 4)

        assert rate_limiter.get_available_in("demo") == 30

    def test_clients_are_independent(self, rate_limiter: RateLimiter) -> None:
        rate_limiter.increment_attempts("demo", 5)
        assert rate_limiter.allow_request("other") is True

    def test_default_limit(self, timer) -> None:
        """Test limite par defaut des clients non configures."""
        limiter = RateLimiter(MemoryRateLimitStorage(), clock=timer)
        assert limiter.get_remaining_attempts("anything") == 1000

    def test_unlimited(self, timer) -> None:
        limiter = RateLimiter(
            MemoryRateLimitStorage(),
            limits={"free": RateLimitConfig(max_attempts=None)},
            clock=timer,
        )
        limiter.increment_attempts("free", 10_000)

        assert limiter.allow_request("free") is True
        assert limiter.get_remaining_attempts("free") == UNLIMITED
        assert limiter.get_available_in("free") == 0

    def test_zero_limit_always_denies(self, timer) -> None:
        limiter = RateLimiter(
            MemoryRateLimitStorage(),
            limits={"closed": RateLimitConfig(max_attempts=0)},
            clock=timer,
        )
        assert limiter.allow_request("closed") is False

    def test_clear_rate_limit(self, rate_limiter: RateLimiter) -> None:
        rate_limiter.increment_attempts("demo", 5)
        rate_limiter.clear_rate_limit("demo")
        assert rate_limiter.get_remaining_attempts("demo") == 5

    def test_set_limit(self, rate_limiter: RateLimiter) -> None:
        rate_limiter.set_limit("demo", 1, 10)
        rate_limiter.increment_attempts("demo")
        assert rate_limiter.allow_request("demo") is False

    def test_attempt(self, rate_limiter: RateLimiter) -> None:
        """Test attempt verifie et consomme."""
        for _ in range(5):
            assert rate_limiter.attempt("demo") is True
        assert rate_limiter.attempt("demo") is False
        assert rate_limiter.get_remaining_attempts("demo") == 0

    def test_concurrent_attempts_admit_exactly_max(self, rate_limiter: RateLimiter) -> None:
        """Test jamais plus de max_attempts admissions concurrentes."""
        admitted = []
        barrier = threading.Barrier(20)

        def worker() -> None:
            barrier.wait()
            admitted.append(rate_limiter.attempt("demo"))

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert admitted.count(True) == 5

    def test_release_attempts(self, rate_limiter: RateLimiter) -> None:
        """Test une reservation rendue redevient disponible."""
        rate_limiter.attempt("demo", 3)
        rate_limiter.release_attempts("demo", 3)

        assert rate_limiter.get_remaining_attempts("demo") == 5

    def test_release_never_below_zero(self, rate_limiter: RateLimiter, timer) -> None:
        rate_limiter.attempt("demo", 1)
        rate_limiter.release_attempts("demo", 10)
        assert rate_limiter.get_remaining_attempts("demo") == 5

        timer.advance(61)
        rate_limiter.release_attempts("demo", 1)
        assert rate_limiter.get_remaining_attempts("demo") == 5
