"""Tests for execution dispatch."""

from types import SimpleNamespace

import pytest

from changegate.core.approval.dispatcher import ExecutionDispatcher
from changegate.core.errors import ConfigurationError
from changegate.core.rules import Operation


class StubStore:
    item_type = "TODO"

    def __init__(self):
        self.calls = []

    def apply(self, operation, item_id, data):
        self.calls.append((operation, item_id, data))
        return {"id": item_id or 1}


def _request(status="APPROVED", item_type="TODO", operation="UPDATE", item_id=3, data=None):
    return SimpleNamespace(
        id=10,
        status=status,
        target_item_type=item_type,
        target_item_id=item_id,
        operation=operation,
        requested_data=data if data is not None else {"title": "New"},
    )


class TestExecutionDispatcher:
    """Tests for ExecutionDispatcher."""

    def test_apply_routes_to_store(self):
        """Test that an approved request reaches its store."""
        store = StubStore()
        dispatcher = ExecutionDispatcher([store])

        result = dispatcher.apply(_request())

        assert result == {"id": 3}
        assert store.calls == [(Operation.UPDATE, 3, {"title": "New"})]

    @pytest.mark.parametrize("status", ["PENDING", "PARTIALLY_APPROVED", "REJECTED", "WITHDRAWN"])
    def test_requires_approved_status(self, status):
        """Test that only approved requests execute."""
        store = StubStore()
        dispatcher = ExecutionDispatcher([store])

        with pytest.raises(ConfigurationError):
            dispatcher.apply(_request(status=status))
        assert store.calls == []

    def test_unknown_item_type(self):
        """Test that an unregistered item type is a configuration error."""
        dispatcher = ExecutionDispatcher([StubStore()])
        with pytest.raises(ConfigurationError, match="Unsupported item type"):
            dispatcher.apply(_request(item_type="EXPENSE"))

    def test_unknown_operation(self):
        """Test that an unknown operation is a configuration error."""
        dispatcher = ExecutionDispatcher([StubStore()])
        with pytest.raises(ConfigurationError, match="Unsupported operation"):
            dispatcher.apply(_request(operation="ARCHIVE"))

    def test_register(self):
        """Test store registration."""
        dispatcher = ExecutionDispatcher()
        assert not dispatcher.supports("TODO")
        with pytest.raises(ConfigurationError):
            dispatcher.store_for("TODO")

        store = StubStore()
        dispatcher.register(store)
        assert dispatcher.supports("TODO")
        assert dispatcher.store_for("TODO") is store
