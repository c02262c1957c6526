"""Base class for domain stores.

A domain store executes CREATE / UPDATE / DELETE for one item type. Stores
share the caller's database session and only flush, so an approved change
commits together with the request's state transition.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from changegate.core.errors import ConfigurationError, InvalidRequestError, NotFoundError
from changegate.core.rules.catalog import Operation

LEVELS: Tuple[str, ...] = ("LOW", "MEDIUM", "HIGH")


class DomainStore(ABC):
    """Executes item operations for a single item type.

    Subclasses set ``item_type``, ``model`` and ``diff_fields`` and implement
    the field handling in :meth:`create` and :meth:`update`.
    """

    item_type: str = ""
    model: Any = None
    diff_fields: Tuple[str, ...] = ()

    def __init__(self, db: Session):
        self.db = db

    def apply(self, operation: Operation, item_id: Optional[int], data: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
        """Perform an operation.

        Args:
            operation: CREATE, UPDATE or DELETE
            item_id: Target item ID (ignored for CREATE)
            data: Proposed item fields (ignored for DELETE)

        Returns:
            The created or updated item, or None after a delete
        """
        operation = Operation(operation)
        data = dict(data or {})

        if operation == Operation.CREATE:
            return self.create(data)
        if operation == Operation.UPDATE:
            return self.update(self._require_id(item_id, operation), data)
        if operation == Operation.DELETE:
            self.delete(self._require_id(item_id, operation))
            return None

        raise ConfigurationError(f"Unsupported operation for {self.item_type}: {operation}")

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new item from the proposed fields."""
        pass

    @abstractmethod
    def update(self, item_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Merge the proposed fields into an existing item."""
        pass

    @abstractmethod
    def to_dict(self, item: Any) -> Dict[str, Any]:
        """Serialize an item to JSON-compatible values."""
        pass

    def delete(self, item_id: int) -> None:
        item = self._get(item_id)
        self.db.delete(item)
        self.db.flush()

    def get(self, item_id: int) -> Dict[str, Any]:
        return self.to_dict(self._get(item_id))

    def list_items(self) -> List[Dict[str, Any]]:
        items = self.db.query(self.model).order_by(self.model.id).all()
        return [self.to_dict(item) for item in items]

    def exists(self, item_id: int) -> bool:
        return self.db.query(self.model.id).filter(self.model.id == item_id).first() is not None

    def current_data(self, item_id: int) -> Dict[str, Any]:
        """Current values of the diffable fields.

        Raises:
            NotFoundError: If the item does not exist
        """
        item = self.to_dict(self._get(item_id))
        return {name: item.get(name) for name in self.diff_fields}

    def _get(self, item_id: int) -> Any:
        item = self.db.query(self.model).filter(self.model.id == item_id).first()
        if item is None:
            raise NotFoundError(f"{self.item_type} not found: {item_id}")
        return item

    def _require_id(self, item_id: Optional[int], operation: Operation) -> int:
        if item_id is None:
            raise InvalidRequestError(f"Item ID required for {operation.value} operation")
        return item_id

    @staticmethod
    def _check_choice(field_name: str, value: Any, choices: Tuple[str, ...]) -> str:
        text = str(value).upper()
        if text not in choices:
            raise InvalidRequestError(
                f"Invalid {field_name}: {value!r} (expected one of {', '.join(choices)})"
            )
        return text
