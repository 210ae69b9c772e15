"""Comment checker hooks for file-writing tools.

``tool.execute.before`` records the target of every write/edit/multiedit
call in the pending call registry. ``tool.execute.after`` consumes that
record, runs the external comment detector over the written content and,
when comments survive filtering, appends a warning to the tool output so
the agent sees it on its next step.

Comment detection itself is delegated to an external command; this module
only decides when to call it and what to do with the result.
"""

import asyncio
import json
import logging
import shlex
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from pydantic import ValidationError

from .errors import DetectorError
from .heuristics import is_tool_failure
from .models import (
    Comment,
    FileComments,
    PendingCall,
    ToolAfterOutput,
    ToolBeforeOutput,
    ToolInput,
    ToolName,
)

if TYPE_CHECKING:
    from .pending_registry import PendingCallRegistry

logger = logging.getLogger(__name__)

# Extensions the detector command is expected to understand
SUPPORTED_EXTENSIONS = frozenset({
    ".py", ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs",
    ".go", ".rs", ".java", ".kt", ".swift", ".c", ".h", ".cc", ".cpp", ".hpp",
    ".cs", ".rb", ".php", ".lua", ".sh", ".bash", ".zsh", ".nix",
    ".scala", ".dart", ".vue", ".svelte", ".sql", ".yaml", ".yml", ".toml",
})

# Comments that carry tooling directives rather than prose
DIRECTIVE_MARKERS = (
    "type:", "noqa", "pylint:", "eslint-disable", "eslint-enable",
    "@ts-", "prettier-ignore", "pragma", "nolint", "istanbul ignore",
)

DETECTOR_TIMEOUT_SEC = 10.0


class CommentDetector(Protocol):
    """Interface of the comment detection collaborator."""

    def is_supported(self, file_path: str) -> bool: ...

    async def detect(self, file_path: str, content: str) -> list[Comment]: ...


class SubprocessCommentDetector:
    """Runs an external detector command per file.

    The command is invoked as ``<command> <file_path>`` with the file
    content on stdin and must print a JSON list of comment objects.
    """

    def __init__(
        self,
        command: str,
        supported_extensions: frozenset = SUPPORTED_EXTENSIONS,
        timeout_sec: float = DETECTOR_TIMEOUT_SEC,
    ) -> None:
        self.argv = shlex.split(command)
        self.supported_extensions = supported_extensions
        self.timeout_sec = timeout_sec

    def is_supported(self, file_path: str) -> bool:
        return Path(file_path).suffix.lower() in self.supported_extensions

    async def detect(self, file_path: str, content: str) -> list[Comment]:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.argv,
                file_path,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise DetectorError(f"Could not start detector {self.argv[0]}", cause=e) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(content.encode()),
                timeout=self.timeout_sec,
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise DetectorError(f"Detector timed out after {self.timeout_sec}s on {file_path}") from e

        if process.returncode != 0:
            raise DetectorError(
                f"Detector exited with {process.returncode} on {file_path}: "
                f"{stderr.decode(errors='replace').strip()[:200]}"
            )

        try:
            data = json.loads(stdout or b"[]")
            return [Comment.model_validate(item) for item in data]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            raise DetectorError(f"Detector output for {file_path} is not a comment list", cause=e) from e


def filter_comments(comments: list[Comment]) -> list[Comment]:
    """Drop comments that are not worth flagging.

    Removes empty comments, shebangs and tool directives.
    """
    kept = []
    for comment in comments:
        text = comment.text.strip()
        body = text.lstrip("#/*-;! ").strip()
        if not body:
            continue
        if text.startswith("#!"):
            continue
        lower = body.lower()
        if any(lower.startswith(marker) for marker in DIRECTIVE_MARKERS):
            continue
        kept.append(comment)
    return kept


def format_hook_message(file_comments: list[FileComments]) -> str:
    """Render the warning appended to tool output."""
    lines = [
        "[COMMENT CHECKER]",
        "Your recent change added the following comments:",
        "",
    ]
    for entry in file_comments:
        lines.append(f'<comments file="{entry.file_path}">')
        for comment in entry.comments:
            lines.append(f'  <comment line-number="{comment.line_number}">{comment.text.strip()}</comment>')
        lines.append("</comments>")
        lines.append("")
    lines.append(
        "Remove comments that restate what the code does. Keep only comments "
        "that record constraints or non-obvious behavior the code cannot express."
    )
    return "\n".join(lines)


def extract_file_path(args: dict) -> Optional[str]:
    """Return the target path from tool args, whichever key the tool used."""
    for key in ("filePath", "file_path", "path"):
        value = args.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8", errors="replace")


class CommentChecker:
    """Correlates write/edit tool calls with their output for comment checks."""

    def __init__(
        self,
        registry: "PendingCallRegistry",
        detector: CommentDetector,
        comment_filter: Callable[[list[Comment]], list[Comment]] = filter_comments,
    ) -> None:
        """Initialize the comment checker.

        Args:
            registry: Shared pending call registry keyed by call ID
            detector: Comment detection collaborator
            comment_filter: Post-detection filter
        """
        self.registry = registry
        self.detector = detector
        self.comment_filter = comment_filter

    async def on_tool_before(self, tool_input: ToolInput, output: ToolBeforeOutput) -> None:
        """Register write/edit calls so their completion can be checked."""
        tool = tool_input.tool.lower()
        if tool not in {t.value for t in ToolName}:
            logger.debug(f"Skipping non-write tool {tool}")
            return

        file_path = extract_file_path(output.args)
        if not file_path:
            logger.debug(f"No file path in {tool} args for call {tool_input.call_id}")
            return

        if not self.detector.is_supported(file_path):
            logger.debug(f"Unsupported file {file_path}")
            return

        content = output.args.get("content")
        self.registry.register(
            tool_input.call_id,
            PendingCall(
                file_path=file_path,
                content=content if isinstance(content, str) else None,
                tool=ToolName(tool),
                session_id=tool_input.session_id,
            ),
        )

    async def on_tool_after(self, tool_input: ToolInput, output: ToolAfterOutput) -> None:
        """Annotate ``output.output`` with comment warnings, in place."""
        pending: Optional[PendingCall] = self.registry.consume(tool_input.call_id)
        if pending is None:
            return

        if is_tool_failure(output.output):
            logger.debug(f"Call {tool_input.call_id}: tool reported failure, skipping comment check")
            return

        try:
            if pending.content:
                content = pending.content
            else:
                content = await asyncio.to_thread(_read_text, pending.file_path)

            comments = await self.detector.detect(pending.file_path, content)
            comments = self.comment_filter(comments)
        except (DetectorError, OSError) as e:
            logger.warning(f"Comment check failed for {pending.file_path}: {e}")
            return

        if not comments:
            logger.debug(f"No comments flagged in {pending.file_path}")
            return

        message = format_hook_message([FileComments(file_path=pending.file_path, comments=comments)])
        output.output += f"\n\n{message}"
        logger.info(f"Flagged {len(comments)} comment(s) in {pending.file_path}")
