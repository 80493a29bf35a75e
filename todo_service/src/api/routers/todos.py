from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from ..repositories import Repository
from ..schemas import (
    ErrorResponse,
    MessageResponse,
    TodoCreate,
    TodoListResponse,
    TodoMutationResponse,
    TodoResponse,
    TodoUpdate,
)
from ..utils import normalize_todo, sort_by_created_at, utc_now_iso

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/todos",
    tags=["todos"],
)

TODO_NOT_FOUND = "Todo not found"


def _get_repo(request: Request) -> Repository:
    """
    Dependency returning the repository built once at startup.
    """
    return request.app.state.repository


async def _json_object_body(request: Request) -> Optional[Dict[str, Any]]:
    """
    Parse the request body as a JSON object. Returns None when the body is
    empty, is not valid JSON, or is JSON but not an object.
    """
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _request_body(model: type) -> Dict[str, Any]:
    """OpenAPI requestBody entry for a handler that reads its JSON body itself."""
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TODO_NOT_FOUND)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TodoListResponse,
    response_model_exclude_none=True,
    summary="List Todos",
    description="Return every todo ordered by creation time, oldest first.",
    responses={
        200: {"description": "List retrieved successfully"},
        500: {"model": ErrorResponse, "description": "Store failure"},
    },
)
def list_todos(repo: Repository = Depends(_get_repo)) -> Dict[str, Any]:
    """
    Scan the whole table and normalize each record.
    """
    todos = sort_by_created_at(normalize_todo(item) for item in repo.scan())
    return {"success": True, "todos": todos, "count": len(todos)}


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoResponse,
    response_model_exclude_none=True,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={
        200: {"description": "Todo found"},
        404: {"model": ErrorResponse, "description": "Todo not found"},
        500: {"model": ErrorResponse, "description": "Store failure"},
    },
)
def get_todo(todo_id: str, repo: Repository = Depends(_get_repo)) -> Dict[str, Any]:
    """
    Retrieve a single Todo item by its ID.
    """
    item = repo.get(todo_id)
    if item is None:
        raise _not_found()
    return {"success": True, "todo": normalize_todo(item)}


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoMutationResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and return the created resource.",
    responses={
        201: {"description": "Todo created successfully"},
        400: {"model": ErrorResponse, "description": "Title is missing or blank"},
        500: {"model": ErrorResponse, "description": "Store failure"},
    },
    openapi_extra=_request_body(TodoCreate),
)
def create_todo(
    body: Optional[Dict[str, Any]] = Depends(_json_object_body),
    repo: Repository = Depends(_get_repo),
) -> Dict[str, Any]:
    """
    Create a new Todo with a fresh UUID and creation timestamp.
    """
    if body is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required")
    try:
        payload = TodoCreate.model_validate(body)
    except ValidationError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required")

    todo = {
        "id": str(uuid.uuid4()),
        "title": payload.title,
        "completed": payload.completed,
        "createdAt": utc_now_iso(),
    }
    repo.put(todo)
    logger.info("Created todo %s", todo["id"])
    return {"success": True, "message": "Todo created successfully", "todo": todo}


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoMutationResponse,
    response_model_exclude_none=True,
    summary="Update Todo",
    description=(
        "Merge the supplied fields into an existing Todo. Keys absent from the body are left "
        "unchanged; updatedAt is always refreshed."
    ),
    responses={
        200: {"description": "Todo updated"},
        400: {"model": ErrorResponse, "description": "Body is not a JSON object"},
        404: {"model": ErrorResponse, "description": "Todo not found"},
        500: {"model": ErrorResponse, "description": "Store failure"},
    },
    openapi_extra=_request_body(TodoUpdate),
)
def update_todo(
    todo_id: str,
    body: Optional[Dict[str, Any]] = Depends(_json_object_body),
    repo: Repository = Depends(_get_repo),
) -> Dict[str, Any]:
    """
    Partial update of a Todo item, persisted as a full put of the merged record.
    """
    if body is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body is required")
    payload = TodoUpdate.model_validate(body)

    existing = repo.get(todo_id)
    if existing is None:
        raise _not_found()

    if payload.title is not None:
        existing["title"] = payload.title
    if payload.completed is not None:
        existing["completed"] = payload.completed
    existing["updatedAt"] = utc_now_iso()

    repo.put(existing)
    logger.info("Updated todo %s", todo_id)
    return {"success": True, "message": "Todo updated successfully", "todo": normalize_todo(existing)}


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=MessageResponse,
    summary="Delete Todo",
    description="Delete a Todo item by ID.",
    responses={
        200: {"description": "Todo deleted"},
        404: {"model": ErrorResponse, "description": "Todo not found"},
        500: {"model": ErrorResponse, "description": "Store failure"},
    },
)
def delete_todo(todo_id: str, repo: Repository = Depends(_get_repo)) -> Dict[str, Any]:
    """
    Delete a Todo. Returns 404 if it does not exist.

    The existence check and the delete are two separate store calls. A todo
    removed by another request in between is still reported as deleted.
    """
    if repo.get(todo_id) is None:
        raise _not_found()
    repo.delete(todo_id)
    logger.info("Deleted todo %s", todo_id)
    return {"success": True, "message": "Todo deleted successfully"}
