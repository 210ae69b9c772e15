"""Todo continuation enforcer.

Nudges an idle session to keep working when its todo list still has
incomplete items, without nagging sessions the user stopped and without
sending more than one nudge between user messages.

Per-session flags:
    reminded     set when a nudge is sent, cleared by the next user message
    interrupted  set by an abort-shaped session.error, cleared by idle
    errored      set by any session.error, cleared by idle

Idle decision:
    idle → wait grace period → interrupted/errored? clear both, stop
         → already reminded? stop
         → fetch todos → none incomplete? stop
         → reminded meanwhile? stop
         → mark reminded → interrupted/errored during fetch? unmark, stop
         → send nudge → failed? unmark

Host events are not ordered relative to each other, so an abort for the
same turn can land after the idle event. The grace period and the re-check
after the todo fetch cover both windows.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

from .heuristics import detect_interrupt
from .models import SessionFlags, Todo

if TYPE_CHECKING:
    from .host_client import HostClient

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD_SEC = 0.15

CONTINUATION_PROMPT = """[SYSTEM REMINDER - TODO CONTINUATION]

Incomplete tasks remain in your todo list. Continue working on the next pending task.

- Proceed without asking for permission
- Mark each task complete when finished
- Do not stop until all tasks are done"""


def format_continuation_prompt(todos: list[Todo]) -> str:
    """Build the nudge text with a progress line for ``todos``."""
    total = len(todos)
    remaining = sum(1 for todo in todos if todo.is_incomplete)
    completed = total - remaining
    return f"{CONTINUATION_PROMPT}\n\n[Status: {completed}/{total} completed, {remaining} remaining]"


class TodoContinuationEnforcer:
    """Per-session reminder state machine driven by host lifecycle events."""

    def __init__(
        self,
        client: "HostClient",
        directory: Optional[str] = None,
        grace_period_sec: float = DEFAULT_GRACE_PERIOD_SEC,
    ) -> None:
        """Initialize the enforcer.

        Args:
            client: Host client used for todo fetches and prompts
            directory: Working directory passed along with prompts
            grace_period_sec: Wait after session.idle before deciding
        """
        self.client = client
        self.directory = directory
        self.grace_period_sec = grace_period_sec

        # Session storage: session_id -> SessionFlags
        self._sessions: dict[str, SessionFlags] = {}

        self._total_reminders = 0

    def _flags(self, session_id: str) -> SessionFlags:
        flags = self._sessions.get(session_id)
        if flags is None:
            flags = SessionFlags()
            self._sessions[session_id] = flags
        return flags

    def get_flags(self, session_id: str) -> Optional[SessionFlags]:
        """Return the flags tracked for a session, or None if unseen."""
        return self._sessions.get(session_id)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def total_reminders(self) -> int:
        return self._total_reminders

    def on_session_error(self, session_id: str, error: Any = None) -> None:
        """Record an error; abort-shaped errors also mark the session interrupted."""
        flags = self._flags(session_id)
        flags.errored = True
        if detect_interrupt(error):
            flags.interrupted = True
            logger.debug(f"Session {session_id}: interrupted")
        else:
            logger.debug(f"Session {session_id}: errored")

    def on_user_message(self, session_id: str) -> None:
        """A new user turn makes the session eligible for another nudge."""
        flags = self._sessions.get(session_id)
        if flags is not None and flags.reminded:
            flags.reminded = False
            logger.debug(f"Session {session_id}: reminder cleared by user message")

    def on_session_deleted(self, session_id: str) -> None:
        """Forget everything about a deleted session."""
        if self._sessions.pop(session_id, None) is not None:
            logger.debug(f"Session {session_id}: state dropped")

    async def on_session_idle(self, session_id: str) -> bool:
        """Decide whether an idle session gets a continuation nudge.

        Returns:
            True if a nudge was sent
        """
        # Give session.error for the same turn a chance to arrive first
        await asyncio.sleep(self.grace_period_sec)

        flags = self._flags(session_id)
        if flags.interrupted or flags.errored:
            logger.debug(
                f"Session {session_id}: idle after "
                f"{'interrupt' if flags.interrupted else 'error'}, no reminder"
            )
            flags.interrupted = False
            flags.errored = False
            return False

        if flags.reminded:
            logger.debug(f"Session {session_id}: already reminded")
            return False

        try:
            todos = await self.client.session_todo(session_id)
        except Exception as e:
            logger.warning(f"Session {session_id}: todo fetch failed: {e}")
            return False

        if not todos:
            logger.debug(f"Session {session_id}: no todos")
            return False

        if not any(todo.is_incomplete for todo in todos):
            logger.debug(f"Session {session_id}: all {len(todos)} todos finished")
            return False

        # The session may have been deleted while the fetch was in flight
        flags = self._flags(session_id)
        if flags.reminded:
            logger.debug(f"Session {session_id}: reminded by a concurrent idle decision")
            return False
        flags.reminded = True

        if flags.interrupted or flags.errored:
            flags.reminded = False
            logger.debug(f"Session {session_id}: stopped during todo fetch, no reminder")
            return False

        prompt = format_continuation_prompt(todos)
        try:
            await self.client.session_prompt(session_id, prompt, self.directory)
        except Exception as e:
            flags.reminded = False
            logger.warning(f"Session {session_id}: continuation prompt failed: {e}")
            return False

        self._total_reminders += 1
        remaining = sum(1 for todo in todos if todo.is_incomplete)
        logger.info(f"Session {session_id}: continuation reminder sent ({remaining}/{len(todos)} remaining)")
        return True
