from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import as_utc

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Internal helper to normalize due_date input into an aware UTC datetime.
    - If value is a string, attempt to parse via datetime.fromisoformat; if time is missing, set to 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - Naive datetimes are taken as UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return as_utc(value)

    if isinstance(value, date):
        # Promote a date to a datetime at midnight
        return as_utc(datetime(value.year, value.month, value.day))

    if isinstance(value, str):
        s = value.strip()
        # 'Z' suffix is not accepted by fromisoformat on older interpreters
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return as_utc(datetime(d.year, d.month, d.day))
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00Z')."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


def _require_text(value: Optional[str], field_name: str, max_length: Optional[int] = None) -> str:
    if value is None:
        raise ValueError(f"{field_name} is required")
    s = value.strip()
    if not s:
        raise ValueError(f"{field_name} cannot be empty")
    if max_length is not None and len(s) > max_length:
        raise ValueError(f"{field_name} must be at most {max_length} characters")
    return s


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task. The owner comes from the caller identity,
    never from the payload.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "File quarterly report",
                "description": "Upload the PDF to the finance share",
                "due_date": "2025-02-01T09:00:00Z",
            }
        }
    )

    title: str = Field(..., description="Short title for the task", min_length=1, max_length=200)
    description: str = Field(..., description="Task description", min_length=1)
    due_date: datetime = Field(
        ...,
        description="Due date/time. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _require_text(v, "title", 200)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _require_text(v, "description")

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        """
        Normalize due_date from str/date/datetime to an aware datetime.
        """
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Schema for updating an existing task.
    All fields are optional; only provided fields will be updated.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "File quarterly report (v2)",
                "due_date": "2025-02-02",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the task", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Task description", min_length=1)
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        if v is None:
            return v
        return _require_text(v, "title", 200)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _require_text(v, "description")

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "3f0c2b7e9d4a4b1f8a6c5d2e1f0a9b8c",
                "owner_id": "u_123",
                "title": "File quarterly report",
                "description": "Upload the PDF to the finance share",
                "due_date": "2025-02-01T09:00:00Z",
                "created_at": "2025-01-25T10:15:30.123456Z",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    owner_id: str = Field(..., description="Identifier of the owning user")
    title: str = Field(..., description="Short title for the task")
    description: str = Field(..., description="Task description")
    due_date: datetime = Field(..., description="Due date/time as an ISO8601 datetime")
    created_at: datetime = Field(..., description="Creation timestamp")


# PUBLIC_INTERFACE
class TaskList(BaseModel):
    """
    Envelope for paginated task list responses.
    """

    items: List[TaskOut] = Field(..., description="Tasks of the caller, ordered by due date")
    total: int = Field(..., description="Total number of tasks owned by the caller")
    limit: int = Field(..., description="Limit applied to the query")
    offset: int = Field(..., description="Offset applied to the query")


# PUBLIC_INTERFACE
class UserCreate(BaseModel):
    """Schema for registering an account in the directory."""

    id: str = Field(..., description="Opaque user identifier", min_length=1, max_length=128)
    email: str = Field(..., description="Contact email address", max_length=320)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        return _require_text(v, "id", 128)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """
        Light sanity check only: exactly one '@' with text on both sides.
        """
        s = _require_text(v, "email", 320)
        local, sep, domain = s.partition("@")
        if not sep or not local or not domain or "@" in domain or " " in s:
            raise ValueError("email must look like local@domain")
        return s


# PUBLIC_INTERFACE
class UserOut(BaseModel):
    """Schema returned by the API for an account."""

    id: str = Field(..., description="Opaque user identifier")
    email: str = Field(..., description="Contact email address")
    created_at: datetime = Field(..., description="Registration timestamp")


# PUBLIC_INTERFACE
class ValidateStringIn(BaseModel):
    """
    Payload of the empty-string validation call. The value is typed loosely so
    that a non-string input yields a 400 with a message instead of a 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    input_string: Any = Field(default=None, alias="inputString", description="Text to check")


# PUBLIC_INTERFACE
class ValidateStringOut(BaseModel):
    """Structured result of the empty-string validation call."""

    success: bool = Field(..., description="True when the input is not blank")
    message: str = Field(..., description="Human-readable outcome")


# PUBLIC_INTERFACE
class OverdueTaskOut(BaseModel):
    """Snapshot of an overdue task as reported in a sweep summary."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: str
    due_date: datetime = Field(..., alias="dueDate")
    owner_id: str = Field(..., alias="userId")


# PUBLIC_INTERFACE
class SweepSummaryOut(BaseModel):
    """
    Summary of one overdue sweep run.

    `emailsSent` counts dispatch attempts, not confirmed deliveries.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "success": True,
                "overdueTasks": [
                    {
                        "id": "3f0c2b7e9d4a4b1f8a6c5d2e1f0a9b8c",
                        "title": "File quarterly report",
                        "description": "Upload the PDF to the finance share",
                        "dueDate": "2025-02-01T09:00:00Z",
                        "userId": "u_123",
                    }
                ],
                "emailsSent": 1,
            }
        },
    )

    success: bool
    overdue_tasks: List[OverdueTaskOut] = Field(..., alias="overdueTasks")
    emails_sent: int = Field(..., alias="emailsSent")
