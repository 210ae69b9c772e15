"""Tests for TodoContinuationEnforcer.

Exercises the idle decision under event races: errors before and during
the grace period, aborts during the todo fetch, prompt failures, and the
one-reminder-per-user-turn rule.

Run with:
    pytest tests/agent-hooks/test_todo_continuation.py -v
"""

import asyncio

import pytest

from agent_hooks.errors import HostClientError
from agent_hooks.todo_continuation import (
    CONTINUATION_PROMPT,
    TodoContinuationEnforcer,
    format_continuation_prompt,
)

GRACE = 0.05


@pytest.fixture
def enforcer(mock_client):
    return TodoContinuationEnforcer(mock_client, directory="/work/app", grace_period_sec=GRACE)


class TestIdleDecision:
    """Happy path and short-circuits of session.idle."""

    @pytest.mark.asyncio
    async def test_idle_with_incomplete_todos_sends_one_prompt(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("pending", "completed")

        sent = await enforcer.on_session_idle("s1")

        assert sent is True
        mock_client.session_prompt.assert_awaited_once()
        session_id, text, directory = mock_client.session_prompt.await_args.args
        assert session_id == "s1"
        assert directory == "/work/app"
        assert text.startswith(CONTINUATION_PROMPT)
        assert "1/2 completed, 1 remaining" in text
        assert enforcer.get_flags("s1").reminded is True

    @pytest.mark.asyncio
    async def test_no_todos_no_prompt(self, enforcer, mock_client):
        mock_client.session_todo.return_value = []

        assert await enforcer.on_session_idle("s1") is False
        mock_client.session_prompt.assert_not_awaited()
        assert enforcer.get_flags("s1").reminded is False

    @pytest.mark.asyncio
    async def test_all_todos_finished_no_prompt(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("completed", "cancelled")

        assert await enforcer.on_session_idle("s1") is False
        mock_client.session_prompt.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_status_counts_as_incomplete(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("blocked", "completed", "completed")

        assert await enforcer.on_session_idle("s1") is True
        text = mock_client.session_prompt.await_args.args[1]
        assert "2/3 completed, 1 remaining" in text

    @pytest.mark.asyncio
    async def test_todo_fetch_failure_is_swallowed(self, enforcer, mock_client):
        mock_client.session_todo.side_effect = HostClientError("GET /session/s1/todo failed")

        assert await enforcer.on_session_idle("s1") is False
        mock_client.session_prompt.assert_not_awaited()
        assert enforcer.get_flags("s1").reminded is False


class TestNoDoubleReminder:
    """At most one reminder between user messages."""

    @pytest.mark.asyncio
    async def test_repeated_idle_sends_single_prompt(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("pending", "in_progress")

        for _ in range(3):
            await enforcer.on_session_idle("s1")

        assert mock_client.session_prompt.await_count == 1
        assert enforcer.total_reminders == 1

    @pytest.mark.asyncio
    async def test_user_message_allows_second_reminder(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("pending")

        await enforcer.on_session_idle("s1")
        enforcer.on_user_message("s1")
        await enforcer.on_session_idle("s1")

        assert mock_client.session_prompt.await_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_idles_send_single_prompt(self, enforcer, mock_client, make_todos):
        todos = make_todos("pending")

        async def slow_fetch(session_id):
            await asyncio.sleep(0.01)
            return todos

        mock_client.session_todo.side_effect = slow_fetch

        # Both decisions are inside the fetch before either sets reminded
        results = await asyncio.gather(
            enforcer.on_session_idle("s1"),
            enforcer.on_session_idle("s1"),
        )

        assert mock_client.session_todo.await_count == 2
        assert mock_client.session_prompt.await_count == 1
        assert sorted(results) == [False, True]

    @pytest.mark.asyncio
    async def test_prompt_failure_allows_retry(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("pending")
        mock_client.session_prompt.side_effect = [HostClientError("POST failed", status=500), None]

        assert await enforcer.on_session_idle("s1") is False
        assert enforcer.get_flags("s1").reminded is False

        assert await enforcer.on_session_idle("s1") is True
        assert mock_client.session_prompt.await_count == 2


class TestInterruptSuppression:
    """Errors and aborts suppress the next idle decision."""

    @pytest.mark.asyncio
    async def test_interrupt_before_idle_suppresses_and_clears(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("pending")

        enforcer.on_session_error("s1", {"name": "MessageAbortedError", "message": "Aborted"})
        flags = enforcer.get_flags("s1")
        assert flags.interrupted is True
        assert flags.errored is True

        assert await enforcer.on_session_idle("s1") is False

        mock_client.session_todo.assert_not_awaited()
        mock_client.session_prompt.assert_not_awaited()
        assert flags.interrupted is False
        assert flags.errored is False

    @pytest.mark.asyncio
    async def test_plain_error_suppresses_once(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("pending")

        enforcer.on_session_error("s1", {"name": "APIError", "message": "rate limited"})
        assert enforcer.get_flags("s1").interrupted is False

        assert await enforcer.on_session_idle("s1") is False
        # Flags were consumed, so the following idle reminds
        assert await enforcer.on_session_idle("s1") is True

    @pytest.mark.asyncio
    async def test_error_during_grace_period_suppresses(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("pending")

        idle = asyncio.create_task(enforcer.on_session_idle("s1"))
        await asyncio.sleep(GRACE / 5)
        enforcer.on_session_error("s1", "Operation was cancelled by user")

        assert await idle is False
        mock_client.session_prompt.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_abort_during_todo_fetch_rolls_back_reminder(self, enforcer, mock_client, make_todos):
        todos = make_todos("pending")

        async def fetch_then_abort(session_id):
            enforcer.on_session_error(session_id, {"name": "AbortError"})
            return todos

        mock_client.session_todo.side_effect = fetch_then_abort

        assert await enforcer.on_session_idle("s1") is False
        mock_client.session_prompt.assert_not_awaited()
        assert enforcer.get_flags("s1").reminded is False

    @pytest.mark.asyncio
    async def test_error_on_other_session_does_not_suppress(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("pending")

        enforcer.on_session_error("s2", "aborted")

        assert await enforcer.on_session_idle("s1") is True


class TestSessionLifecycle:
    """Lazy creation, user messages and deletion."""

    def test_flags_created_lazily(self, enforcer):
        assert enforcer.get_flags("s1") is None
        enforcer.on_session_error("s1", None)
        assert enforcer.get_flags("s1") is not None
        assert enforcer.session_count == 1

    def test_user_message_for_unknown_session_is_noop(self, enforcer):
        enforcer.on_user_message("ghost")
        assert enforcer.get_flags("ghost") is None

    @pytest.mark.asyncio
    async def test_session_deleted_forgets_all_flags(self, enforcer, mock_client, make_todos):
        mock_client.session_todo.return_value = make_todos("pending")
        await enforcer.on_session_idle("s1")
        enforcer.on_session_error("s1", "interrupted")

        enforcer.on_session_deleted("s1")

        assert enforcer.get_flags("s1") is None
        assert await enforcer.on_session_idle("s1") is True


class TestFormatContinuationPrompt:

    def test_progress_line(self, make_todos):
        text = format_continuation_prompt(make_todos("completed", "completed", "pending", "cancelled"))
        assert text.endswith("[Status: 3/4 completed, 1 remaining]")
