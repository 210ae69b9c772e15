"""Error types for the agent hook service.

Every error raised here is recoverable: handlers catch them, log, and
degrade to doing nothing for the current turn.
"""

from typing import Optional


class AgentHooksError(Exception):
    """Base class for agent hook errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class HostClientError(AgentHooksError):
    """A host RPC (todo fetch, prompt, toast) failed."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause)
        self.status = status


class DetectorError(AgentHooksError):
    """The external comment detector failed or produced unreadable output."""


class ConfigLoadError(AgentHooksError):
    """A config file could not be read or validated."""

    def __init__(self, path: str, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message, cause)
        self.path = path
