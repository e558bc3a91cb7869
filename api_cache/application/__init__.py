"""
Application Layer - Orchestration des requetes en cache.

Ce module contient:
    - ports/: Contrat des clients fournisseurs
    - services/: Facade cache + limitation de debit
    - use_cases/: Orchestrateur de requetes
"""
