from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _is_utf8(value: str) -> bool:
    """False for strings holding lone surrogates, which cannot be stored or returned."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Body of POST /todos.

    title must be a string that is not blank once whitespace is stripped; it is
    stored exactly as sent. completed is only honoured when it is a JSON boolean.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Buy groceries", "completed": False}}
    )

    title: str = Field(..., description="Short title for the todo item")
    completed: bool = Field(default=False, description="Completion status flag")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip() or not _is_utf8(v):
            raise ValueError("Title is required")
        return v

    @field_validator("completed", mode="before")
    @classmethod
    def coerce_completed(cls, v: Any) -> bool:
        return v if isinstance(v, bool) else False


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Body of PUT /todos/{id}. All fields are optional; only keys present in the
    body are merged. A title or completed of the wrong type (including null)
    leaves the stored value in place.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Buy groceries and supplies", "completed": True}}
    )

    title: Optional[str] = Field(default=None, description="New title")
    completed: Optional[bool] = Field(default=None, description="New completion status")

    @field_validator("title", mode="before")
    @classmethod
    def drop_non_string_title(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) and _is_utf8(v) else None

    @field_validator("completed", mode="before")
    @classmethod
    def drop_non_bool_completed(cls, v: Any) -> Optional[bool]:
        return v if isinstance(v, bool) else None


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    A todo as returned by the API.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "3f1c2f0e-8a4b-4d7e-9d6a-2b1f0c9e7a55",
                "title": "Buy groceries",
                "completed": False,
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-26T09:00:00.000001Z",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    completed: bool = Field(..., description="Completion status flag")
    createdAt: str = Field(..., description="Creation timestamp (ISO8601, UTC)")
    updatedAt: Optional[str] = Field(default=None, description="Last update timestamp (ISO8601, UTC)")


class TodoListResponse(BaseModel):
    success: bool = True
    todos: List[TodoOut] = Field(..., description="All todos, oldest first")
    count: int = Field(..., description="Number of todos returned")


class TodoResponse(BaseModel):
    success: bool = True
    todo: TodoOut


class TodoMutationResponse(BaseModel):
    success: bool = True
    message: str
    todo: TodoOut


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str = Field(..., description="Human readable failure description")


class HealthResponse(BaseModel):
    status: str
    message: str
