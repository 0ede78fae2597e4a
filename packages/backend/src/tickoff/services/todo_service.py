"""Todo repository — owner-scoped CRUD, search and pagination.

Every operation takes the requesting user's id and only ever touches that
user's rows. A todo that exists but belongs to someone else is reported as
NotFound (the default, so ids of other users' todos can't be probed) or as
Forbidden when TICKOFF_CONCEAL_FOREIGN_TODOS is off.
"""

import math
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tickoff.config import settings
from tickoff.db.models import TODO_STATUSES, Todo
from tickoff.errors import Forbidden, NotFound, ValidationError
from tickoff.schemas.todo import clean_title

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("title", "description", "status")

# Largest OFFSET a signed 64-bit database integer can hold.
MAX_OFFSET = 2**63 - 1


@dataclass
class TodoPage:
    items: list[Todo]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


def _clean_title(title: Optional[str]) -> str:
    try:
        return clean_title(title)
    except ValueError as e:
        raise ValidationError.for_field("title", str(e))


class TodoRepository:
    """Business logic for todo CRUD, always scoped to one owner."""

    def __init__(self, db: AsyncSession, conceal_foreign: Optional[bool] = None):
        self.db = db
        self.conceal_foreign = (
            settings.conceal_foreign_todos if conceal_foreign is None else conceal_foreign
        )

    # ─── Read ────────────────────────────────────────────

    async def list_todos(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
    ) -> TodoPage:
        """List a user's todos, newest first.

        `search` is a case-insensitive substring matched against title and
        description. LIKE wildcards in it are escaped, so "50%" means a
        literal percent sign.
        """
        if page < 1:
            raise ValidationError.for_field("page", "page must be a positive integer")
        if page_size < 1:
            raise ValidationError.for_field("limit", "limit must be a positive integer")
        page_size = min(page_size, settings.max_page_size)
        offset = (page - 1) * page_size
        if offset > MAX_OFFSET:
            raise ValidationError.for_field("page", "page is out of range")

        filters = [Todo.user_id == user_id]
        term = (search or "").strip()
        if term:
            filters.append(
                or_(
                    Todo.title.icontains(term, autoescape=True),
                    Todo.description.icontains(term, autoescape=True),
                )
            )

        total = await self.db.scalar(
            select(func.count()).select_from(Todo).where(*filters)
        )
        result = await self.db.execute(
            select(Todo)
            .where(*filters)
            .order_by(Todo.created_at.desc(), Todo.id.desc())
            .limit(page_size)
            .offset(offset)
        )
        return TodoPage(
            items=list(result.scalars().all()),
            total=total or 0,
            page=page,
            page_size=page_size,
        )

    async def get_todo(self, user_id: uuid.UUID, todo_id: uuid.UUID) -> Todo:
        """Fetch one todo the user owns, or raise NotFound / Forbidden."""
        todo = await self.db.get(Todo, todo_id)
        if todo is None:
            raise NotFound("Todo not found")
        if todo.user_id != user_id:
            logger.warning(
                "todo.ownership_mismatch",
                todo_id=str(todo_id),
                requested_by=str(user_id),
            )
            if self.conceal_foreign:
                raise NotFound("Todo not found")
            raise Forbidden("You do not own this todo")
        return todo

    # ─── Write ───────────────────────────────────────────

    async def create_todo(
        self,
        user_id: uuid.UUID,
        title: str,
        description: Optional[str] = None,
    ) -> Todo:
        todo = Todo(
            user_id=user_id,
            title=_clean_title(title),
            description=description,
            status="pending",
        )
        self.db.add(todo)
        await self.db.commit()
        logger.info("todo.created", todo_id=str(todo.id))
        return todo

    async def update_todo(
        self,
        user_id: uuid.UUID,
        todo_id: uuid.UUID,
        fields: dict[str, Any],
    ) -> Todo:
        """Apply a partial update. Only keys present in `fields` change."""
        unknown = sorted(set(fields) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ValidationError(
                "Unknown fields",
                fields=[{"field": f, "message": "Field cannot be updated"} for f in unknown],
            )

        todo = await self.get_todo(user_id, todo_id)

        if "title" in fields:
            todo.title = _clean_title(fields["title"])
        if "description" in fields:
            todo.description = fields["description"]
        if "status" in fields:
            if fields["status"] not in TODO_STATUSES:
                raise ValidationError.for_field(
                    "status", f"status must be one of: {', '.join(TODO_STATUSES)}"
                )
            todo.status = fields["status"]

        await self.db.commit()
        logger.info("todo.updated", todo_id=str(todo_id), fields=sorted(fields))
        return todo

    async def toggle_todo(self, user_id: uuid.UUID, todo_id: uuid.UUID) -> Todo:
        """Flip a todo between pending and done."""
        todo = await self.get_todo(user_id, todo_id)
        todo.status = "done" if todo.status == "pending" else "pending"
        await self.db.commit()
        logger.info("todo.toggled", todo_id=str(todo_id), status=todo.status)
        return todo

    async def delete_todo(self, user_id: uuid.UUID, todo_id: uuid.UUID) -> None:
        """Delete a todo. Deleting it again raises NotFound."""
        todo = await self.get_todo(user_id, todo_id)
        await self.db.delete(todo)
        await self.db.commit()
        logger.info("todo.deleted", todo_id=str(todo_id))
