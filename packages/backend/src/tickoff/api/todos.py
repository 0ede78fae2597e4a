"""Todo API routes.

Routes translate HTTP to TodoRepository calls; the repository does the
ownership checks and raises AppErrors that main.py renders. The router is
mounted with the get_current_user dependency, and each handler asks for
the identity again to scope its query (FastAPI caches it per request).
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from tickoff.auth.dependencies import CurrentIdentity, get_current_user
from tickoff.db.engine import get_db
from tickoff.errors import NotFound
from tickoff.schemas.todo import TodoCreate, TodoPage, TodoRead, TodoUpdate
from tickoff.services.todo_service import TodoRepository

router = APIRouter(prefix="/todos")


def _repo(db: AsyncSession = Depends(get_db)) -> TodoRepository:
    return TodoRepository(db)


def _parse_id(todo_id: str) -> uuid.UUID:
    # A malformed id can never match a row.
    try:
        return uuid.UUID(todo_id)
    except ValueError:
        raise NotFound("Todo not found")


@router.get("", response_model=TodoPage)
async def list_todos(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: int = Query(10, ge=1, description="Page size (capped server-side)"),
    search: Optional[str] = Query(None, max_length=200, description="Title/description substring"),
    identity: CurrentIdentity = Depends(get_current_user),
    repo: TodoRepository = Depends(_repo),
):
    """List the current user's todos, newest first."""
    result = await repo.list_todos(
        user_id=identity.user_uuid,
        page=page,
        page_size=limit,
        search=search,
    )
    return {
        "items": result.items,
        "total": result.total,
        "page": result.page,
        "limit": result.page_size,
        "pages": result.pages,
    }


@router.get("/{todo_id}", response_model=TodoRead)
async def get_todo(
    todo_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    repo: TodoRepository = Depends(_repo),
):
    return await repo.get_todo(identity.user_uuid, _parse_id(todo_id))


@router.post("", response_model=TodoRead, status_code=201)
async def create_todo(
    body: TodoCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    repo: TodoRepository = Depends(_repo),
):
    return await repo.create_todo(
        identity.user_uuid, title=body.title, description=body.description
    )


@router.put("/{todo_id}", response_model=TodoRead)
async def update_todo(
    todo_id: str,
    body: TodoUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    repo: TodoRepository = Depends(_repo),
):
    """Partially update a todo; only fields present in the body change."""
    return await repo.update_todo(
        identity.user_uuid, _parse_id(todo_id), body.model_dump(exclude_unset=True)
    )


@router.patch("/{todo_id}/toggle", response_model=TodoRead)
async def toggle_todo(
    todo_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    repo: TodoRepository = Depends(_repo),
):
    """Flip a todo between pending and done."""
    return await repo.toggle_todo(identity.user_uuid, _parse_id(todo_id))


@router.delete("/{todo_id}", status_code=204)
async def delete_todo(
    todo_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    repo: TodoRepository = Depends(_repo),
):
    await repo.delete_todo(identity.user_uuid, _parse_id(todo_id))
    return Response(status_code=204)
