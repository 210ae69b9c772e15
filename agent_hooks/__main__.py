#!/usr/bin/env python3
"""CLI entry point for the agent hook service.

Starts the hook receiver, the pending call registry sweep and the host
client, then runs until SIGTERM/SIGINT.

Usage:
    python -m agent_hooks [OPTIONS]
    agent-hooks [OPTIONS]

Options:
    --port PORT              Hook receiver port (default: 4319)
    --server-url URL         Host server URL for todo/prompt/toast calls
    --directory PATH         Project directory (config lookup, prompt context)
    --detector CMD           Comment detector command (enables comment checker)
    --grace-period SECONDS   Idle decision delay (default: 0.15)
    --verbose                Enable verbose logging
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from . import __version__


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="agent-hooks",
        description="Agent hook service - comment checks and todo continuation reminders",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Start with default settings
    agent-hooks

    # Enable the comment checker with an external detector
    agent-hooks --detector "comment-detect --json"

    # Point at a host server on a non-default port
    agent-hooks --server-url http://127.0.0.1:4097 --directory ~/projects/app

Environment Variables:
    AGENT_HOOKS_PORT          Override default port (4319)
    OPENCODE_SERVER_URL       Host server URL
    AGENT_HOOKS_DETECTOR      Comment detector command
    AGENT_HOOKS_GRACE_PERIOD  Idle decision delay in seconds
    AGENT_HOOKS_DEBUG         Set to 1 for debug logging
""",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--host",
        default=os.environ.get("AGENT_HOOKS_HOST", "127.0.0.1"),
        help="Interface to bind (default: 127.0.0.1, env: AGENT_HOOKS_HOST)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=os.environ.get("AGENT_HOOKS_PORT", "4319"),
        help="Hook receiver port (default: 4319, env: AGENT_HOOKS_PORT)",
    )

    parser.add_argument(
        "--server-url",
        default=os.environ.get("OPENCODE_SERVER_URL", "http://127.0.0.1:4096"),
        help="Host server URL (default: http://127.0.0.1:4096, env: OPENCODE_SERVER_URL)",
    )

    parser.add_argument(
        "--directory",
        type=Path,
        default=Path.cwd(),
        help="Project directory for config lookup and prompt context (default: cwd)",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Extra config file applied after user and project config",
    )

    parser.add_argument(
        "--detector",
        default=os.environ.get("AGENT_HOOKS_DETECTOR"),
        help="Comment detector command; comment checker is off without one",
    )

    parser.add_argument(
        "--grace-period",
        type=float,
        default=os.environ.get("AGENT_HOOKS_GRACE_PERIOD") or None,
        help="Seconds to wait after session.idle before deciding (default: 0.15)",
    )

    parser.add_argument(
        "--pending-ttl",
        type=float,
        default=None,
        help="Seconds before an unmatched tool call is dropped (default: 60)",
    )

    parser.add_argument(
        "--sweep-interval",
        type=float,
        default=None,
        help="Seconds between pending call sweeps (default: 10)",
    )

    parser.add_argument(
        "--no-startup-toast",
        action="store_true",
        help="Do not show the version toast on the first session",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=os.environ.get("AGENT_HOOKS_DEBUG") == "1",
        help="Enable verbose logging",
    )

    # String defaults taken from the environment go through each option's type=
    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _pick(cli_value: Optional[float], config_ms: Optional[int], default: float) -> float:
    """CLI flag wins, then config (milliseconds), then the built-in default."""
    if cli_value is not None:
        return cli_value
    if config_ms is not None:
        return config_ms / 1000.0
    return default


async def main_async(args: argparse.Namespace) -> int:
    """Async main entry point."""
    # Import here to speed up --help
    from .comment_checker import CommentChecker, SubprocessCommentDetector
    from .config import HookName, load_plugin_config
    from .host_client import HostClient
    from .pending_registry import DEFAULT_SWEEP_INTERVAL_SEC, DEFAULT_TTL_SEC, PendingCallRegistry
    from .receiver import HookReceiver
    from .router import EventRouter
    from .startup import StartupNotifier
    from .todo_continuation import DEFAULT_GRACE_PERIOD_SEC, TodoContinuationEnforcer

    logger = logging.getLogger("agent-hooks")
    logger.info(f"Starting agent hooks v{__version__}")

    loaded = load_plugin_config(args.directory, args.config)
    config = loaded.config

    registry = PendingCallRegistry(
        ttl=_pick(args.pending_ttl, config.pending_ttl_ms, DEFAULT_TTL_SEC),
        sweep_interval=_pick(args.sweep_interval, config.sweep_interval_ms, DEFAULT_SWEEP_INTERVAL_SEC),
    )
    client = HostClient(base_url=args.server_url)

    comment_checker = None
    if config.is_enabled(HookName.COMMENT_CHECKER):
        if args.detector:
            comment_checker = CommentChecker(registry, SubprocessCommentDetector(args.detector))
        else:
            logger.info("No comment detector configured, comment checker disabled")

    enforcer = None
    if config.is_enabled(HookName.TODO_CONTINUATION_ENFORCER):
        enforcer = TodoContinuationEnforcer(
            client,
            directory=str(args.directory),
            grace_period_sec=_pick(args.grace_period, config.grace_period_ms, DEFAULT_GRACE_PERIOD_SEC),
        )

    startup = None
    if config.is_enabled(HookName.STARTUP_TOAST) or loaded.errors:
        startup = StartupNotifier(
            client,
            loaded,
            show_version_toast=config.is_enabled(HookName.STARTUP_TOAST) and not args.no_startup_toast,
        )

    router = EventRouter(comment_checker=comment_checker, enforcer=enforcer, startup=startup)
    receiver = HookReceiver(
        router,
        registry=registry,
        enforcer=enforcer,
        host=args.host,
        port=args.port,
    )

    # Setup signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_signal(signum: int) -> None:
        logger.info(f"Received signal {signum}, shutting down...")
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))

    try:
        await client.start()
        await registry.start()
        await receiver.start()

        logger.info("Service started successfully")

        await shutdown_event.wait()

    except Exception as e:
        logger.error(f"Service error: {e}")
        return 1

    finally:
        logger.info("Shutting down...")
        await receiver.stop()
        await registry.stop()
        await client.stop()

    return 0


def main() -> None:
    """Main entry point."""
    args = parse_args()
    setup_logging(args.verbose)

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
