"""
API Cache - Architecture Hexagonale

Proxy de cache et de limitation de debit pour les appels sortants vers des
API HTTP tierces, avec un pipeline d'ingestion des reponses en cache.

Structure:
    - domain/: Coeur metier (entites, ports, services purs)
    - application/: Use cases, services et ports (interfaces)
    - infrastructure/: Adapters (DB, HTTP, config, logging, ingestion)
"""

__version__ = "1.0.0"
