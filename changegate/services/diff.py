"""Field-by-field diffs for approval requests.

Shows approvers what a pending change would do: new values for CREATE,
old against new for UPDATE and the values that disappear for DELETE.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from changegate.core.approval.dispatcher import ExecutionDispatcher
from changegate.core.errors import InvalidRequestError
from changegate.core.rules.catalog import Operation
from changegate.core.rules.conditions import stringify


@dataclass
class FieldDiff:
    """Difference in a single field."""

    field_name: str
    old_value: Any = None
    new_value: Any = None

    @property
    def change_type(self) -> str:
        if self.old_value is None:
            return "ADDED"
        if self.new_value is None:
            return "REMOVED"
        return "MODIFIED"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field_name": self.field_name,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "change_type": self.change_type,
        }


class DiffService:
    """Builds diffs using the stores registered on a dispatcher."""

    def __init__(self, dispatcher: ExecutionDispatcher):
        self.dispatcher = dispatcher

    def generate_diff(
        self,
        item_type: str,
        operation: Operation,
        item_id: Optional[int],
        requested_data: Optional[Mapping[str, Any]],
    ) -> List[FieldDiff]:
        """
        Generate the diff for a proposed change.

        Args:
            item_type: Target item type
            operation: CREATE, UPDATE or DELETE
            item_id: Target item ID (None for CREATE)
            requested_data: Proposed item fields

        Returns:
            One FieldDiff per changed field, in the store's field order

        Raises:
            ConfigurationError: If no store handles the item type
            InvalidRequestError: If UPDATE or DELETE lack an item ID
            NotFoundError: If the target item does not exist
        """
        store = self.dispatcher.store_for(item_type)
        operation = Operation(operation)
        data = requested_data or {}
        diffs: List[FieldDiff] = []

        if operation == Operation.CREATE:
            for name in store.diff_fields:
                self._add_if_present(diffs, name, None, data.get(name))
            return diffs

        if item_id is None:
            raise InvalidRequestError(f"Item ID required for {operation.value} operation")
        current = store.current_data(item_id)

        if operation == Operation.UPDATE:
            for name in store.diff_fields:
                self._compare(diffs, name, current.get(name), data.get(name))
        else:
            for name in store.diff_fields:
                self._add_if_present(diffs, name, current.get(name), None)

        return diffs

    @staticmethod
    def _compare(diffs: List[FieldDiff], name: str, old: Any, new: Any) -> None:
        # Fields absent from a partial update are unchanged
        if new is not None and stringify(old) != stringify(new):
            diffs.append(FieldDiff(name, old, new))

    @staticmethod
    def _add_if_present(diffs: List[FieldDiff], name: str, old: Any, new: Any) -> None:
        if old is not None or new is not None:
            diffs.append(FieldDiff(name, old, new))
