"""
MemoryRateLimitStorage - Implementation en memoire du RateLimitStorage.

Responsabilite unique:
----------------------
Stocker les fenetres de limitation en memoire (processus unique, tests).

Note:
-----
Le verrouillage par client (lecture-modification-ecriture) est assure par
le RateLimiter; ce storage protege seulement son dictionnaire interne.
"""

from dataclasses import replace
from threading import Lock
from typing import Optional

from api_cache.domain.ports.rate_limit_storage import RateLimitStorage, RateLimitWindow


class MemoryRateLimitStorage(RateLimitStorage):
    """
    RateLimitStorage en memoire.

    Example:
        >>> storage = MemoryRateLimitStorage()
        >>> storage.set("api-cache:rate-limit:demo", RateLimitWindow(1, 0.0))
        >>> storage.get("api-cache:rate-limit:demo").attempts
        1
    """

    def __init__(self):
        self._data: dict[str, RateLimitWindow] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[RateLimitWindow]:
        with self._lock:
            window = self._data.get(key)
            # Copie: l'appelant ne modifie pas l'etat stocke par reference
            return replace(window) if window else None

    def set(self, key: str, window: RateLimitWindow) -> None:
        with self._lock:
            self._data[key] = replace(window)

    def delete(self, key: str) -> bool:
        with self._lock:
            if key in self._data:
                del self._data[key]
                return True
            return False

    def clear(self) -> int:
        """
        Supprime toutes les fenetres.

        Returns:
            Nombre de fenetres supprimees.
        """
        with self._lock:
            count = len(self._data)
            self._data.clear()
        return count
