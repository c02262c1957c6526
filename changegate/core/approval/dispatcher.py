"""Execution dispatch.

Maps an approved request onto the domain store registered for its item type.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from changegate.core.errors import ConfigurationError
from changegate.core.rules.catalog import Operation
from .states import RequestStatus

logger = logging.getLogger(__name__)


class ExecutionDispatcher:
    """Registry of domain stores keyed by item type."""

    def __init__(self, stores: Optional[Iterable[Any]] = None):
        self._stores: Dict[str, Any] = {}
        for store in stores or ():
            self.register(store)

    def register(self, store: Any) -> None:
        """Register a domain store.

        Args:
            store: DomainStore instance to register
        """
        item_type = store.item_type
        if item_type in self._stores:
            logger.warning(f"Overwriting existing store for item type: {item_type}")
        self._stores[item_type] = store
        logger.debug(f"Registered domain store: {item_type}")

    def supports(self, item_type: str) -> bool:
        return item_type in self._stores

    def store_for(self, item_type: str) -> Any:
        """Get the store for an item type.

        Raises:
            ConfigurationError: If no store handles the item type
        """
        store = self._stores.get(item_type)
        if store is None:
            raise ConfigurationError(f"Unsupported item type: {item_type}")
        return store

    def apply(self, request: Any) -> Optional[Dict[str, Any]]:
        """Execute an approved request against its domain store.

        Args:
            request: ApprovalRequest in APPROVED status

        Returns:
            The created or updated item, or None after a delete

        Raises:
            ConfigurationError: If the request is not approved or its item
                type or operation is unknown
        """
        if RequestStatus(request.status) != RequestStatus.APPROVED:
            raise ConfigurationError(
                f"Cannot execute request {request.id} in status {request.status}"
            )

        try:
            operation = Operation(request.operation)
        except ValueError:
            raise ConfigurationError(f"Unsupported operation: {request.operation}")

        store = self.store_for(request.target_item_type)
        logger.info(
            f"Executing {operation.value} on {request.target_item_type}"
            f" (item={request.target_item_id}, request={request.id})"
        )
        return store.apply(operation, request.target_item_id, request.requested_data)
