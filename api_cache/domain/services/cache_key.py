"""
Generation des cles de cache.

Format d'une cle:
    {client}.{methode}.{endpoint}.{sha1(params normalises)}[.{version}]

La cle est stable entre redemarrages et insensible a l'ordre des
parametres (voir normalize_params).
"""

import hashlib
import json
import re
from typing import Any, Optional

from api_cache.domain.exceptions import InvalidIdentifierError
from api_cache.domain.services.param_normalizer import normalize_params


_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_identifier(value: Any) -> str:
    """
    Valide un identifiant de client.

    Raises:
        InvalidIdentifierError: Si la valeur n'est pas une chaine composee
            de caracteres alphanumeriques, '-' ou '_'.
    """
    if not isinstance(value, str) or not _IDENTIFIER_PATTERN.match(value):
        raise InvalidIdentifierError(value)
    return value


def hash_params(params: Any) -> str:
    """Retourne le SHA-1 hexadecimal de l'encodage JSON compact normalise."""
    canonical = json.dumps(normalize_params(params), separators=(",", ":"))
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


def generate_cache_key(
    client: str,
    endpoint: str,
    params: Any,
    method: str = "GET",
    version: Optional[str] = None,
) -> str:
    """
    Genere une cle de cache deterministe.

    Args:
        client: Nom du client API.
        endpoint: Endpoint appele (le '/' initial est ignore).
        params: Parametres de la requete.
        method: Methode HTTP.
        version: Version de l'API.

    Returns:
        Cle de cache.

    Example:
        >>> generate_cache_key("demo", "/predictions", {"query": "test"}, "GET", "v1")
        'demo.get.predictions.<sha1>.v1'
    """
    validate_identifier(client)

    key = f"{client}.{method.lower()}.{endpoint.lstrip('/')}.{hash_params(params)}"
    if version is not None:
        key = f"{key}.{version}"
    return key
