"""Pydantic models for the agent hook service.

Host payloads use camelCase keys (``sessionID``, ``callID``, ``filePath``);
fields are declared snake_case with aliases so either spelling validates.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Lifecycle events delivered on the host event stream."""

    SESSION_CREATED = "session.created"
    SESSION_ERROR = "session.error"
    SESSION_IDLE = "session.idle"
    SESSION_DELETED = "session.deleted"
    MESSAGE_UPDATED = "message.updated"


class ToolName(str, Enum):
    """File-writing tools whose output is checked for comments."""

    WRITE = "write"
    EDIT = "edit"
    MULTIEDIT = "multiedit"


class ToastVariant(str, Enum):
    """Toast severities accepted by the host TUI."""

    INFO = "info"
    ERROR = "error"


# Todo statuses that count as finished
TERMINAL_TODO_STATUSES = frozenset({"completed", "cancelled"})


class PendingCall(BaseModel):
    """A write/edit tool call awaiting its ``tool.execute.after`` event."""

    file_path: str = Field(description="Target file of the write/edit")
    content: Optional[str] = Field(
        default=None, description="File content from the tool args, if the tool supplied it"
    )
    tool: ToolName = Field(description="Which file-writing tool was invoked")
    session_id: str = Field(description="Session that issued the tool call")


class PendingRegistryStats(BaseModel):
    """Counters for the pending call registry (exposed on /health)."""

    total_pending: int = Field(default=0, description="Entries currently registered")
    total_registered: int = Field(default=0, description="Registrations since start")
    total_overwritten: int = Field(default=0, description="Registrations that replaced a live key")
    total_consumed: int = Field(default=0, description="Entries handed to a completion event")
    total_missed: int = Field(default=0, description="Consumes for keys not registered")
    total_expired: int = Field(default=0, description="Entries removed by the TTL sweep")


class SessionFlags(BaseModel):
    """Reminder bookkeeping for a single session."""

    reminded: bool = Field(
        default=False, description="A continuation nudge was sent since the last user message"
    )
    interrupted: bool = Field(
        default=False, description="Latest terminal signal was an abort or cancel"
    )
    errored: bool = Field(
        default=False, description="An error was observed since the last idle decision"
    )


class Todo(BaseModel):
    """A todo item as reported by the host session."""

    id: str = Field(default="", description="Todo identifier")
    content: str = Field(default="", description="Todo text")
    status: str = Field(description="Open-ended status, e.g. pending, in_progress, completed")
    priority: str = Field(default="medium", description="Priority label")

    @property
    def is_incomplete(self) -> bool:
        return self.status not in TERMINAL_TODO_STATUSES


class Comment(BaseModel):
    """A comment reported by the external detector."""

    text: str = Field(description="Comment text including its delimiter")
    line_number: int = Field(default=0, alias="lineNumber", description="1-based line number")
    comment_type: str = Field(default="line", alias="commentType", description="line, block or docstring")

    model_config = {"populate_by_name": True}


class FileComments(BaseModel):
    """Comments grouped by the file they were found in."""

    file_path: str
    comments: list[Comment] = Field(default_factory=list)


class ToolInput(BaseModel):
    """The ``input`` half of a tool hook call."""

    tool: str
    session_id: str = Field(alias="sessionID")
    call_id: str = Field(alias="callID")

    model_config = {"populate_by_name": True}


class ToolBeforeOutput(BaseModel):
    """The mutable ``output`` half of ``tool.execute.before``."""

    args: dict[str, Any] = Field(default_factory=dict)


class ToolAfterOutput(BaseModel):
    """The mutable ``output`` half of ``tool.execute.after``."""

    title: str = ""
    output: str = ""
    metadata: Any = None


class HookEvent(BaseModel):
    """A named lifecycle event from the host event stream."""

    type: str
    properties: dict[str, Any] = Field(default_factory=dict)


class SessionErrorProperties(BaseModel):
    session_id: Optional[str] = Field(default=None, alias="sessionID")
    error: Any = None

    model_config = {"populate_by_name": True}


class SessionIdleProperties(BaseModel):
    session_id: Optional[str] = Field(default=None, alias="sessionID")

    model_config = {"populate_by_name": True}


class MessageInfo(BaseModel):
    session_id: Optional[str] = Field(default=None, alias="sessionID")
    role: Optional[str] = None

    model_config = {"populate_by_name": True}


class SessionInfo(BaseModel):
    id: Optional[str] = None
    parent_id: Optional[str] = Field(default=None, alias="parentID")

    model_config = {"populate_by_name": True}


class Toast(BaseModel):
    """Payload for ``tui.showToast``."""

    title: str
    message: str
    variant: ToastVariant = ToastVariant.INFO
    duration: int = Field(default=5000, description="Display time in milliseconds")
