"""
RateLimitStorage Port - Interface pour le stockage des fenetres de debit.

Responsabilite unique:
----------------------
Definir le contrat pour stocker/recuperer l'etat de limitation par client.

Usage:
------
En dev et en tests, utiliser MemoryRateLimitStorage. Un backend partage
(Redis, base de donnees) peut etre branche pour plusieurs processus.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class RateLimitWindow:
    """
    Etat d'une fenetre de limitation.

    Attributes:
        attempts: Nombre de tentatives consommees dans la fenetre.
        window_start: Timestamp (secondes) d'ouverture de la fenetre.
    """

    attempts: int
    window_start: float


class RateLimitStorage(ABC):
    """Interface pour le stockage des fenetres de limitation."""

    @abstractmethod
    def get(self, key: str) -> Optional[RateLimitWindow]:
        """
        Recupere la fenetre d'une cle.

        Args:
            key: Cle de limitation.

        Returns:
            Fenetre si existe, None sinon.
        """
        pass

    @abstractmethod
    def set(self, key: str, window: RateLimitWindow) -> None:
        """
        Stocke la fenetre d'une cle.

        Args:
            key: Cle de limitation.
            window: Etat a stocker.
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Supprime la fenetre d'une cle.

        Returns:
            True si supprime, False si inexistant.
        """
        pass
