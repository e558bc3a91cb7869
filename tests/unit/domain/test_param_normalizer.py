"""
Tests unitaires pour la normalisation et le resume des parametres.
"""

import json

import pytest

from api_cache.domain.exceptions import InvalidParamsError
from api_cache.domain.services import (
    is_single_task_array,
    normalize_params,
    summarize_params,
)
from api_cache.domain.services.param_normalizer import MAX_DEPTH


def _nested(depth: int) -> dict:
    """Dictionnaire imbrique sur `depth` niveaux."""
    params: dict = {"leaf": 1}
    for _ in range(depth - 1):
        params = {"child": params}
    return params


class TestNormalizeParams:
    """Tests pour normalize_params."""

    def test_sorts_keys(self) -> None:
        """Test tri des cles."""
        result = normalize_params({"b": 2, "a": 1, "c": 3})
        assert list(result.keys()) == ["a", "b", "c"]

    def test_key_order_does_not_matter(self) -> None:
        """Test meme forme normalisee quel que soit l'ordre."""
        assert normalize_params({"x": 1, "y": {"b": 2, "a": 1}}) == normalize_params(
            {"y": {"a": 1, "b": 2}, "x": 1}
        )

    def test_drops_none_values(self) -> None:
        """Test suppression des valeurs None a tous les niveaux."""
        result = normalize_params({"a": None, "b": {"c": None, "d": 1}, "e": [1, None, 2]})
        assert result == {"b": {"d": 1}, "e": [1, 2]}

    def test_numeric_string_keys_become_ints(self) -> None:
        """Test conversion des cles numeriques."""
        result = normalize_params({"10": "x", "2": "y", "a": "z"})
        assert result == {2: "y", 10: "x", "a": "z"}
        assert list(result.keys()) == [2, 10, "a"]

    def test_non_canonical_numeric_keys_stay_strings(self) -> None:
        """Test '01' et '1.5' ne sont pas des cles entieres."""
        result = normalize_params({"01": 1, "1.5": 2})
        assert set(result.keys()) == {"01", "1.5"}

    def test_list_order_preserved(self) -> None:
        """Test l'ordre des listes est conserve."""
        assert normalize_params([3, 1, 2]) == [3, 1, 2]

    def test_scalars_kept(self) -> None:
        """Test chaines, entiers, flottants et booleens conserves."""
        params = {"s": "x", "i": 1, "f": 1.5, "b": False}
        assert normalize_params(params) == params

    def test_max_depth_accepted(self) -> None:
        """Test imbrication a la profondeur maximale acceptee."""
        normalize_params(_nested(MAX_DEPTH))

    def test_too_deep_rejected(self) -> None:
        """Test imbrication au-dela de la profondeur maximale."""
        with pytest.raises(InvalidParamsError):
            normalize_params(_nested(MAX_DEPTH + 1))

    def test_unsupported_value_rejected(self) -> None:
        """Test valeur non scalaire refusee."""
        with pytest.raises(InvalidParamsError) as exc_info:
            normalize_params({"a": object()})
        assert exc_info.value.code == "INVALID_PARAMS"

    def test_bool_key_rejected(self) -> None:
        """Test cle booleenne refusee."""
        with pytest.raises(InvalidParamsError):
            normalize_params({True: 1})

    def test_scalar_params_rejected(self) -> None:
        """Test parametres qui ne sont ni dict ni liste."""
        with pytest.raises(InvalidParamsError):
            normalize_params("query=test")


class TestIsSingleTaskArray:
    """Tests pour is_single_task_array."""

    def test_single_dict(self) -> None:
        assert is_single_task_array([{"keyword": "x"}]) is True

    def test_two_dicts(self) -> None:
        assert is_single_task_array([{"a": 1}, {"b": 2}]) is False

    def test_single_scalar(self) -> None:
        assert is_single_task_array(["x"]) is False

    def test_dict(self) -> None:
        assert is_single_task_array({"a": 1}) is False


class TestSummarizeParams:
    """Tests pour summarize_params."""

    def test_compact_json(self) -> None:
        """Test resume JSON compact trie."""
        assert summarize_params({"b": 2, "a": "x"}) == '{"a":"x","b":2}'

    def test_truncates_long_strings(self) -> None:
        """Test troncature des chaines longues."""
        summary = json.loads(summarize_params({"q": "x" * 150}, character_limit=10))
        assert summary["q"] == "x" * 10 + "..."

    def test_short_strings_untouched(self) -> None:
        summary = json.loads(summarize_params({"q": "abc"}, character_limit=10))
        assert summary["q"] == "abc"

    def test_nested_collections_encoded_and_truncated(self) -> None:
        """Test les collections imbriquees sont encodees en JSON puis tronquees."""
        summary = json.loads(summarize_params({"k": ["a", "b"]}))
        assert summary["k"] == '["a","b"]'

        summary = json.loads(summarize_params({"k": list(range(100))}, character_limit=5))
        assert summary["k"] == "[0,1,..."

    def test_single_task_array_unwrapped(self) -> None:
        """Test une liste d'une seule tache est depliee."""
        summary = json.loads(summarize_params([{"keywords": ["a"], "location_code": 2840}]))
        assert summary == {"keywords": '["a"]', "location_code": 2840}

    def test_task_array_detection_disabled(self) -> None:
        summary = json.loads(summarize_params([{"a": 1}], detect_task_array=False))
        assert summary == ['{"a":1}']

    def test_pretty_print(self) -> None:
        """Test JSON indente sur 4 espaces."""
        assert summarize_params({"a": 1}, pretty_print=True) == '{\n    "a": 1\n}'

    def test_without_normalization(self) -> None:
        """Test l'ordre d'origine est conserve sans normalisation."""
        assert summarize_params({"b": 1, "a": None}, normalize=False) == '{"b":1,"a":null}'
