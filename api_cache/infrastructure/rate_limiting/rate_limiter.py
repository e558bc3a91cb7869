"""
Rate Limiter - Limitation de debit par client.

Responsabilite unique:
----------------------
Compter les tentatives de chaque client dans une fenetre de duree fixe
(decay) et repondre aux questions d'admission et de capacite restante.

Fonctionnement:
---------------
- La fenetre s'ouvre a la premiere tentative comptee
- Elle est remise a zero une fois decay_seconds ecoulees
- max_attempts None ou negatif = illimite

Thread-safety:
--------------
Chaque lecture-modification-ecriture se fait sous un Lock propre au
client: deux appelants concurrents ne peuvent pas etre admis tous les
deux quand une seule unite reste disponible (voir attempt()).
"""

import math
import sys
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

from api_cache.domain.ports.rate_limit_storage import RateLimitStorage, RateLimitWindow
from api_cache.infrastructure.logging import get_logger

logger = get_logger(__name__)

UNLIMITED = sys.maxsize


@dataclass(frozen=True)
class RateLimitConfig:
    """Limite d'un client: max_attempts tentatives par decay_seconds."""

    max_attempts: Optional[int] = 1000
    decay_seconds: int = 60

    @property
    def unlimited(self) -> bool:
        return self.max_attempts is None or self.max_attempts < 0


class RateLimiter:
    """
    Limiteur de debit a fenetre fixe.

    Example:
        >>> limiter = RateLimiter(MemoryRateLimitStorage(), {"demo": RateLimitConfig(2, 60)})
        >>> limiter.allow_request("demo")
        True
        >>> limiter.increment_attempts("demo", 2)
        >>> limiter.allow_request("demo")
        False
    """

    def __init__(
        self,
        storage: RateLimitStorage,
        limits: Optional[dict[str, RateLimitConfig]] = None,
        default_limit: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialise le limiteur.

        Args:
            storage: Stockage des fenetres.
            limits: Limites par client.
            default_limit: Limite des clients non configures.
            clock: Horloge en secondes (injectable pour les tests).
        """
        self._storage = storage
        self._limits = dict(limits or {})
        self._default_limit = default_limit or RateLimitConfig()
        self._clock = clock
        self._locks: dict[str, Lock] = {}
        self._locks_guard = Lock()

    @staticmethod
    def get_rate_limit_key(client: str) -> str:
        return f"api-cache:rate-limit:{client}"

    def get_limit(self, client: str) -> RateLimitConfig:
        return self._limits.get(client, self._default_limit)

    def set_limit(self, client: str, max_attempts: Optional[int], decay_seconds: int) -> None:
        """Surcharge la limite d'un client a chaud."""
        with self._lock_for(client):
            self._limits[client] = RateLimitConfig(max_attempts, decay_seconds)

    def _lock_for(self, client: str) -> Lock:
        with self._locks_guard:
            lock = self._locks.get(client)
            if lock is None:
                lock = Lock()
                self._locks[client] = lock
            return lock

    def _current_window(self, client: str) -> Optional[RateLimitWindow]:
        """Fenetre courante, None si absente ou expiree."""
        key = self.get_rate_limit_key(client)
        window = self._storage.get(key)
        if window is None:
            return None

        limit = self.get_limit(client)
        if self._clock() >= window.window_start + limit.decay_seconds:
            self._storage.delete(key)
            return None

        return window

    def _remaining(self, client: str) -> int:
        limit = self.get_limit(client)
        if limit.unlimited:
            return UNLIMITED

        window = self._current_window(client)
        attempts = window.attempts if window else 0
        return max(0, limit.max_attempts - attempts)

    def _increment(self, client: str, amount: int) -> RateLimitWindow:
        key = self.get_rate_limit_key(client)
        window = self._current_window(client)
        if window is None:
            window = RateLimitWindow(attempts=0, window_start=self._clock())
        window.attempts += amount
        self._storage.set(key, window)
        return window

    def _available_in(self, client: str) -> int:
        if self._remaining(client) > 0:
            return 0

        window = self._current_window(client)
        if window is None:
            return 0

        limit = self.get_limit(client)
        seconds = window.window_start + limit.decay_seconds - self._clock()
        return max(0, math.ceil(seconds))

    def get_remaining_attempts(self, client: str) -> int:
        """Tentatives restantes dans la fenetre (sys.maxsize si illimite)."""
        with self._lock_for(client):
            return self._remaining(client)

    def get_available_in(self, client: str) -> int:
        """Secondes (arrondies au superieur) avant la remise a zero, 0 si non limite."""
        with self._lock_for(client):
            return self._available_in(client)

    def allow_request(self, client: str) -> bool:
        """True si le client dispose encore d'au moins une tentative."""
        with self._lock_for(client):
            remaining = self._remaining(client)
            allowed = remaining > 0

            if not allowed:
                logger.warning(
                    "rate_limit_exceeded",
                    client=client,
                    available_in=self._available_in(client),
                    max_attempts=self.get_limit(client).max_attempts,
                )
            else:
                logger.debug(
                    "rate_limit_checked",
                    client=client,
                    remaining_attempts=remaining,
                )

            return allowed

    def increment_attempts(self, client: str, amount: int = 1) -> None:
        """Ajoute amount tentatives (ouvre la fenetre si besoin)."""
        with self._lock_for(client):
            window = self._increment(client, amount)

            logger.debug(
                "rate_limit_incremented",
                client=client,
                amount=amount,
                attempts=window.attempts,
                remaining_attempts=self._remaining(client),
            )

    def attempt(self, client: str, amount: int = 1) -> bool:
        """
        Verifie et consomme en une seule operation atomique.

        Returns:
            True si admis (et compte), False sinon (rien n'est compte).
        """
        with self._lock_for(client):
            if self._remaining(client) <= 0:
                logger.warning(
                    "rate_limit_exceeded",
                    client=client,
                    available_in=self._available_in(client),
                )
                return False

            self._increment(client, amount)
            return True

    def release_attempts(self, client: str, amount: int = 1) -> None:
        """
        Rend des tentatives reservees par attempt() (appel jamais abouti).

        Sans effet si la fenetre a expire entre-temps; le compteur ne
        descend jamais sous zero.
        """
        with self._lock_for(client):
            window = self._current_window(client)
            if window is None:
                return

            window.attempts = max(0, window.attempts - amount)
            self._storage.set(self.get_rate_limit_key(client), window)

            logger.debug("rate_limit_released", client=client, amount=amount, attempts=window.attempts)

    def clear_rate_limit(self, client: str) -> None:
        """Remet a zero le compteur d'un client."""
        with self._lock_for(client):
            self._storage.delete(self.get_rate_limit_key(client))
        logger.debug("rate_limit_cleared", client=client)
