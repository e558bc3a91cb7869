"""
Normalisation et resume des parametres de requete.

La forme normalisee sert d'entree au hash de la cle de cache: elle ne
depend ni de l'ordre des cles ni des valeurs nulles. Le resume tronque
sert uniquement a l'affichage et aux logs.
"""

import json
import re
from typing import Any, Union

from api_cache.domain.exceptions import InvalidParamsError


# Profondeur d'imbrication maximale acceptee
MAX_DEPTH = 20

# Longueur par defaut des valeurs dans un resume
DEFAULT_CHARACTER_LIMIT = 100

_INT_KEY_PATTERN = re.compile(r"^(0|-?[1-9][0-9]*)$")

Params = Union[dict, list]


def _normalize_key(key: Any) -> Union[int, str]:
    if isinstance(key, bool):
        raise InvalidParamsError(f"Cle de parametre invalide: {key!r}", invalid_value=key)
    if isinstance(key, int):
        return key
    if isinstance(key, str):
        if _INT_KEY_PATTERN.match(key):
            return int(key)
        return key
    raise InvalidParamsError(f"Cle de parametre invalide: {key!r}", invalid_value=key)


def _sort_key(item: tuple) -> tuple:
    # Entiers avant chaines pour que les cles mixtes restent comparables
    key = item[0]
    return (isinstance(key, str), key)


def _normalize_value(value: Any, depth: int) -> Any:
    if isinstance(value, (dict, list, tuple)):
        return _normalize(value, depth + 1)
    if isinstance(value, (str, int, float, bool)):
        return value
    raise InvalidParamsError(
        f"Type de parametre non supporte: {type(value).__name__}",
        invalid_value=value,
    )


def _normalize(params: Any, depth: int) -> Params:
    if depth > MAX_DEPTH:
        raise InvalidParamsError(
            f"Profondeur maximale d'imbrication depassee ({MAX_DEPTH})"
        )

    if isinstance(params, dict):
        items = []
        for key, value in params.items():
            if value is None:
                continue
            items.append((_normalize_key(key), _normalize_value(value, depth)))
        return dict(sorted(items, key=_sort_key))

    if isinstance(params, (list, tuple)):
        return [_normalize_value(value, depth) for value in params if value is not None]

    raise InvalidParamsError(
        f"Les parametres doivent etre un dict ou une liste, recu: {type(params).__name__}",
        invalid_value=params,
    )


def normalize_params(params: Params) -> Params:
    """
    Normalise recursivement une structure de parametres.

    - Cles de dictionnaire triees
    - Cles numeriques en chaine converties en entiers
    - Valeurs None supprimees
    - Profondeur limitee a MAX_DEPTH niveaux

    Args:
        params: Dictionnaire ou liste de parametres.

    Returns:
        Structure normalisee de meme forme.

    Raises:
        InvalidParamsError: Valeur non scalaire/non collection, ou
            imbrication trop profonde.

    Example:
        >>> normalize_params({"b": 2, "a": {"d": None, "c": 1}, "10": "x"})
        {10: 'x', 'a': {'c': 1}, 'b': 2}
    """
    return _normalize(params, 1)


def is_single_task_array(params: Any) -> bool:
    """
    Heuristique "une seule tache": liste d'un seul element qui est un dict.

    Utilisee uniquement pour l'affichage (resume), jamais pour la cle de cache.
    """
    return (
        isinstance(params, (list, tuple))
        and len(params) == 1
        and isinstance(params[0], dict)
    )


def _truncate(value: str, character_limit: int) -> str:
    if len(value) > character_limit:
        return value[:character_limit] + "..."
    return value


def _summarize_value(value: Any, character_limit: int) -> Any:
    if isinstance(value, str):
        return _truncate(value, character_limit)
    if isinstance(value, (dict, list, tuple)):
        encoded = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        return _truncate(encoded, character_limit)
    return value


def summarize_params(
    params: Params,
    normalize: bool = True,
    pretty_print: bool = False,
    character_limit: int = DEFAULT_CHARACTER_LIMIT,
    detect_task_array: bool = True,
) -> str:
    """
    Produit un resume JSON lisible des parametres.

    Chaque chaine est tronquee a character_limit caracteres (suivie de "...").
    Les collections imbriquees sont encodees en JSON puis tronquees de la
    meme facon. Nombres et booleens sont conserves tels quels.

    Args:
        params: Parametres a resumer.
        normalize: Normaliser avant de resumer.
        pretty_print: JSON indente (4 espaces).
        character_limit: Longueur maximale de chaque valeur.
        detect_task_array: Deplier une liste d'une seule tache (voir
            is_single_task_array).

    Returns:
        Resume au format JSON.
    """
    if detect_task_array and is_single_task_array(params):
        params = params[0]

    if normalize:
        params = normalize_params(params)

    if isinstance(params, dict):
        summary: Any = {
            key: _summarize_value(value, character_limit)
            for key, value in params.items()
        }
    else:
        summary = [_summarize_value(value, character_limit) for value in params]

    if pretty_print:
        return json.dumps(summary, ensure_ascii=False, indent=4)
    return json.dumps(summary, ensure_ascii=False, separators=(",", ":"))
