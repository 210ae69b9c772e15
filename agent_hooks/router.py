"""Event router.

Dispatches host hook calls and lifecycle events to the comment checker,
the todo continuation enforcer and the startup notifier. Payloads are
validated here; a malformed payload turns the call into a no-op, and no
handler error propagates back to the host.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

from pydantic import ValidationError

from .models import (
    EventType,
    HookEvent,
    MessageInfo,
    SessionErrorProperties,
    SessionIdleProperties,
    SessionInfo,
    ToolAfterOutput,
    ToolBeforeOutput,
    ToolInput,
)

if TYPE_CHECKING:
    from .comment_checker import CommentChecker
    from .startup import StartupNotifier
    from .todo_continuation import TodoContinuationEnforcer

logger = logging.getLogger(__name__)


class EventRouter:
    """Routes host events to whichever hooks are enabled."""

    def __init__(
        self,
        comment_checker: Optional["CommentChecker"] = None,
        enforcer: Optional["TodoContinuationEnforcer"] = None,
        startup: Optional["StartupNotifier"] = None,
    ) -> None:
        self.comment_checker = comment_checker
        self.enforcer = enforcer
        self.startup = startup

    async def tool_execute_before(self, data: dict[str, Any]) -> None:
        """Handle ``tool.execute.before``."""
        if self.comment_checker is None:
            return

        try:
            tool_input = ToolInput.model_validate(data.get("input") or {})
            output = ToolBeforeOutput.model_validate(data.get("output") or {})
        except ValidationError as e:
            logger.debug(f"Ignoring malformed tool.execute.before: {e.error_count()} error(s)")
            return

        try:
            await self.comment_checker.on_tool_before(tool_input, output)
        except Exception as e:
            logger.error(f"tool.execute.before failed for call {tool_input.call_id}: {e}")

    async def tool_execute_after(self, data: dict[str, Any]) -> Optional[str]:
        """Handle ``tool.execute.after``.

        Returns:
            The tool output text (annotated if comments were flagged), or
            None if the payload was malformed
        """
        try:
            tool_input = ToolInput.model_validate(data.get("input") or {})
            output = ToolAfterOutput.model_validate(data.get("output") or {})
        except ValidationError as e:
            logger.debug(f"Ignoring malformed tool.execute.after: {e.error_count()} error(s)")
            return None

        if self.comment_checker is None:
            return output.output

        try:
            await self.comment_checker.on_tool_after(tool_input, output)
        except Exception as e:
            logger.error(f"tool.execute.after failed for call {tool_input.call_id}: {e}")
        return output.output

    async def handle_event(self, data: dict[str, Any]) -> None:
        """Handle a lifecycle event from the host event stream."""
        try:
            event = HookEvent.model_validate(data)
        except ValidationError:
            logger.debug("Ignoring event without a type")
            return

        try:
            await self._dispatch(event)
        except ValidationError as e:
            logger.debug(f"Ignoring malformed {event.type} event: {e.error_count()} error(s)")
        except Exception as e:
            logger.error(f"Handler for {event.type} failed: {e}")

    async def _dispatch(self, event: HookEvent) -> None:
        props = event.properties

        if event.type == EventType.SESSION_CREATED:
            if self.startup is not None:
                info = SessionInfo.model_validate(props.get("info") or {})
                await self.startup.on_session_created(info)
            return

        if self.enforcer is None:
            return

        if event.type == EventType.SESSION_ERROR:
            error_props = SessionErrorProperties.model_validate(props)
            if error_props.session_id:
                self.enforcer.on_session_error(error_props.session_id, error_props.error)

        elif event.type == EventType.SESSION_IDLE:
            idle_props = SessionIdleProperties.model_validate(props)
            if idle_props.session_id:
                await self.enforcer.on_session_idle(idle_props.session_id)

        elif event.type == EventType.MESSAGE_UPDATED:
            info = MessageInfo.model_validate(props.get("info") or {})
            if info.session_id and info.role == "user":
                self.enforcer.on_user_message(info.session_id)

        elif event.type == EventType.SESSION_DELETED:
            session_info = SessionInfo.model_validate(props.get("info") or {})
            if session_info.id:
                self.enforcer.on_session_deleted(session_info.id)
