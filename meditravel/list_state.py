"""List-plus-CRUD state for one catalog entity, as used by the admin pages."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from meditravel.db.database import describe_error
from meditravel.logging_config import get_logger

logger = get_logger(__name__)


class ListState:
    """
    Holds the rows of one table plus loading and error flags.

    Failed calls never touch ``items``; they only set ``error``.
    Successful writes patch ``items`` in place of a refetch.
    """

    def __init__(
        self,
        label: str,
        list_fn: Callable[[], List[Dict[str, Any]]],
        create_fn: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None,
        update_fn: Optional[Callable[[Any, Dict[str, Any]], Dict[str, Any]]] = None,
        delete_fn: Optional[Callable[[Any], Any]] = None,
    ):
        self.label = label
        self._list_fn = list_fn
        self._create_fn = create_fn
        self._update_fn = update_fn
        self._delete_fn = delete_fn

        self.items: List[Dict[str, Any]] = []
        self.loading = False
        self.error: Optional[str] = None

    def load(self) -> bool:
        self.loading = True
        try:
            self.items = list(self._list_fn() or [])
            self.error = None
            return True
        except Exception as e:
            self.error = f"Failed to load {self.label}: {describe_error(e)}"
            logger.error(self.error)
            return False
        finally:
            self.loading = False

    def create(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self._create_fn is None:
            raise NotImplementedError(f"{self.label} cannot be created here")
        try:
            row = self._create_fn(data)
        except Exception as e:
            self.error = f"Failed to create {self.label}: {describe_error(e)}"
            logger.error(self.error)
            return None

        self.items = self.items + [row]
        self.error = None
        return row

    def update(self, item_id, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self._update_fn is None:
            raise NotImplementedError(f"{self.label} cannot be updated here")
        try:
            row = self._update_fn(item_id, data)
        except Exception as e:
            self.error = f"Failed to update {self.label}: {describe_error(e)}"
            logger.error(self.error)
            return None

        self.items = [row if item.get("id") == item_id else item for item in self.items]
        self.error = None
        return row

    def delete(self, item_id) -> bool:
        if self._delete_fn is None:
            raise NotImplementedError(f"{self.label} cannot be deleted here")
        try:
            self._delete_fn(item_id)
        except Exception as e:
            self.error = f"Failed to delete {self.label}: {describe_error(e)}"
            logger.error(self.error)
            return False

        self.items = [item for item in self.items if item.get("id") != item_id]
        self.error = None
        return True

    def find(self, item_id) -> Optional[Dict[str, Any]]:
        for item in self.items:
            if item.get("id") == item_id:
                return item
        return None
