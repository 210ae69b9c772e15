"""Text heuristics for classifying host errors and tool output.

The host exposes no structured error kinds, so both predicates fall back to
case-insensitive substring matching. False positives and negatives are
accepted. Swap these out for a structured check if the host ever provides one.
"""

from typing import Any, Optional

# Error names the host uses for user-initiated stops
INTERRUPT_ERROR_NAMES = frozenset({"MessageAbortedError", "AbortError"})

INTERRUPT_MARKERS = ("abort", "cancel", "interrupt")

TOOL_FAILURE_MARKERS = ("error:", "failed to", "could not")


def _error_name_and_message(error: Any) -> tuple[Optional[str], str]:
    """Pull a name and message out of a dict payload or exception."""
    if isinstance(error, BaseException):
        return type(error).__name__, str(error)

    if isinstance(error, dict):
        name = error.get("name")
        message = error.get("message")
        if message is None and isinstance(error.get("data"), dict):
            # Host errors nest the message under data
            message = error["data"].get("message")
        return (
            name if isinstance(name, str) else None,
            message if isinstance(message, str) else "",
        )

    name = getattr(error, "name", None)
    message = getattr(error, "message", None)
    return (
        name if isinstance(name, str) else None,
        message if isinstance(message, str) else "",
    )


def detect_interrupt(error: Any) -> bool:
    """Return True if an error payload looks like a user abort/cancel.

    Args:
        error: ``session.error`` payload: a dict, an exception, a string or None

    Returns:
        True for named abort errors or any message mentioning abort/cancel/interrupt
    """
    if not error:
        return False

    if isinstance(error, str):
        lower = error.lower()
        return any(marker in lower for marker in INTERRUPT_MARKERS)

    name, message = _error_name_and_message(error)
    if name in INTERRUPT_ERROR_NAMES:
        return True

    message = message.lower()
    if name == "DOMException" and "abort" in message:
        return True
    return any(marker in message for marker in INTERRUPT_MARKERS)


def is_tool_failure(output: str) -> bool:
    """Return True if tool output text reads like the tool itself failed.

    Only the tool's own failure counts, so LSP diagnostics that merely
    mention "error" deeper in the output do not match unless they use one
    of the marker phrases.
    """
    lower = output.lower()
    if lower.startswith("error"):
        return True
    return any(marker in lower for marker in TOOL_FAILURE_MARKERS)
