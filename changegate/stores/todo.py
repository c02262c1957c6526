from typing import Any, Dict

from changegate.core.errors import InvalidRequestError
from changegate.db.models import Todo
from .base import DomainStore, LEVELS


class TodoStore(DomainStore):
    """Todos, gated by level."""

    item_type = "TODO"
    model = Todo
    diff_fields = ("title", "description", "level", "completed")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        title = data.get("title")
        if not title:
            raise InvalidRequestError("Todo title is required")

        todo = Todo(
            title=title,
            description=data.get("description"),
            completed=bool(data.get("completed", False)),
            level=self._check_choice("level", data.get("level") or "MEDIUM", LEVELS),
            user_id=data.get("user_id"),
        )
        self.db.add(todo)
        self.db.flush()
        return self.to_dict(todo)

    def update(self, item_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        todo = self._get(item_id)

        if "title" in data:
            if not data["title"]:
                raise InvalidRequestError("Todo title cannot be empty")
            todo.title = data["title"]
        if "description" in data:
            todo.description = data["description"]
        if "completed" in data:
            todo.completed = bool(data["completed"])
        if data.get("level") is not None:
            todo.level = self._check_choice("level", data["level"], LEVELS)
        if data.get("user_id") is not None:
            todo.user_id = data["user_id"]

        self.db.flush()
        return self.to_dict(todo)

    def to_dict(self, item: Todo) -> Dict[str, Any]:
        return {
            "id": item.id,
            "title": item.title,
            "description": item.description,
            "completed": bool(item.completed),
            "level": item.level,
            "user_id": item.user_id,
            "created_at": item.created_at.isoformat() if item.created_at else None,
        }
