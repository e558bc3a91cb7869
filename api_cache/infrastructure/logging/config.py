"""
Configuration structlog du proxy de cache et du pipeline d'ingestion.

Deux rendus:
- console (developpement): couleurs si la sortie est un terminal
- JSON (production): une ligne par evenement, timestamp ISO

Les evenements sont des noms snake_case accompagnes de cles:

    from api_cache.infrastructure.logging import configure_logging, get_logger

    configure_logging(json_logs=True)
    logger = get_logger(__name__)
    logger.info("cache_hit", client="demo", key="demo.get.predictions...")
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog

# Bibliotheques trop bavardes au niveau DEBUG
NOISY_LOGGERS = ("sqlalchemy.engine", "urllib3.connectionpool")


def _renderer(json_logs: bool) -> list:
    if json_logs:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(
    json_logs: bool = False,
    log_level: str = "INFO",
) -> None:
    """
    Configure structlog et le logging standard.

    Args:
        json_logs: True pour JSON (production), False pour la console.
        log_level: Niveau minimum (DEBUG, INFO, WARNING, ERROR).
    """
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *_renderer(json_logs),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Logger structure du module `name` (typiquement __name__)."""
    return structlog.get_logger(name)


@contextmanager
def bound_context(**values: Any) -> Iterator[None]:
    """
    Lie des valeurs au contexte de log le temps d'un bloc.

    Tous les logs emis dans le bloc (quel que soit le module) portent
    ces cles, par exemple le client et l'endpoint d'une requete.

    Example:
        with bound_context(client="demo", endpoint="predictions"):
            logger.info("cache_miss")
    """
    previous = structlog.contextvars.get_contextvars()
    structlog.contextvars.bind_contextvars(**values)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*values.keys())
        # Restaure les valeurs ecrasees par un bloc imbrique
        restored = {k: previous[k] for k in values if k in previous}
        if restored:
            structlog.contextvars.bind_contextvars(**restored)
