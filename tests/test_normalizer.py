"""Tests for the response normalizer."""

from unittest.mock import Mock

import pytest

from budgetbot.models import Wallet
from budgetbot.normalization import normalize, normalize_as
from budgetbot.normalization import normalizer as normalizer_module


@pytest.fixture
def warnings(monkeypatch):
    """Capture normalizer log calls."""
    logger = Mock()
    monkeypatch.setattr(normalizer_module, "logger", logger)
    return logger


class TestNormalize:
    """Tests for normalize()."""

    def test_none_is_empty(self, warnings):
        assert normalize(None) == []
        warnings.warning.assert_not_called()

    def test_list_is_returned_unchanged(self):
        """Test that a bare list is returned by identity."""
        items = [{"id": 1}, {"id": 2}]
        assert normalize(items) is items

    def test_tuple_becomes_list(self):
        assert normalize((1, 2)) == [1, 2]

    def test_envelope_is_unwrapped(self):
        assert normalize({"data": [1, 2], "total": 2}) == [1, 2]

    def test_envelope_with_non_list_data(self, warnings):
        """Test a data key that is not a list is an unexpected shape."""
        assert normalize({"data": "x"}) == []
        warnings.warning.assert_called_once()
        assert warnings.warning.call_args.args[0] == "unexpected_response_shape"

    def test_mapping_without_data(self, warnings):
        assert normalize({"total": 5}) == []
        warnings.warning.assert_called_once()

    @pytest.mark.parametrize("response", ["x", 42, 3.5, True])
    def test_scalars_are_empty_with_warning(self, response, warnings):
        assert normalize(response) == []
        assert warnings.warning.call_args.kwargs["observed_type"] == type(response).__name__

    def test_source_is_logged(self, warnings):
        normalize("x", source="/api/tags")
        assert warnings.warning.call_args.kwargs["source"] == "/api/tags"

    @pytest.mark.parametrize("response", [
        None,
        [1, 2],
        {"data": [1, 2]},
        {"data": "x"},
        {"total": 5},
        "x",
    ])
    def test_idempotent(self, response):
        """Test normalizing twice equals normalizing once."""
        once = normalize(response)
        assert normalize(once) == once


class TestNormalizeAs:
    """Tests for normalize_as()."""

    def test_validates_items(self):
        wallets = normalize_as(
            {"data": [{"id": 1, "name": "Card"}, {"id": 2, "name": "Cash", "type": "cash"}]},
            Wallet,
        )
        assert [w.id for w in wallets] == [1, 2]
        assert all(isinstance(w, Wallet) for w in wallets)

    def test_invalid_items_are_dropped(self, warnings):
        """Test that one bad item does not lose the rest."""
        wallets = normalize_as(
            [{"id": 1, "name": "Card"}, {"name": "no id"}, {"id": 3, "name": "Cash"}],
            Wallet,
        )
        assert [w.id for w in wallets] == [1, 3]
        warnings.warning.assert_called_once()
        assert warnings.warning.call_args.args[0] == "response_item_invalid"
        assert warnings.warning.call_args.kwargs["index"] == 1

    def test_unexpected_shape_is_empty(self, warnings):
        assert normalize_as({"total": 0}, Wallet) == []
