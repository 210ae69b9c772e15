"""One-shot startup toasts.

On the first top-level session of the process, shows which plugin version
and config file are in use, then reports any config files that failed to
load. Child sessions (those with a parent) never trigger it.
"""

import logging
from typing import TYPE_CHECKING

from . import __version__
from .config import get_user_config_path
from .models import SessionInfo, Toast, ToastVariant

if TYPE_CHECKING:
    from .config import LoadedConfig
    from .host_client import HostClient

logger = logging.getLogger(__name__)

PLUGIN_TITLE = "agent-hooks"


class StartupNotifier:
    """Shows version and config-error toasts once per process."""

    def __init__(
        self,
        client: "HostClient",
        loaded_config: "LoadedConfig",
        show_version_toast: bool = True,
    ) -> None:
        self.client = client
        self.loaded_config = loaded_config
        self.show_version_toast = show_version_toast
        self._has_run = False

    @property
    def has_run(self) -> bool:
        return self._has_run

    async def on_session_created(self, info: SessionInfo) -> None:
        if self._has_run or info.parent_id:
            return
        self._has_run = True

        if self.show_version_toast:
            await self._show(Toast(
                title=f"{PLUGIN_TITLE} {__version__}",
                message=f"Hooks active.\nConfig: {get_user_config_path()}",
                variant=ToastVariant.INFO,
                duration=5000,
            ))
            logger.info(f"Startup toast shown: v{__version__}")

        await self._show_config_errors()

    async def _show_config_errors(self) -> None:
        errors = self.loaded_config.errors
        if not errors:
            return

        lines = "\n".join(f"{e.path}: {e}" for e in errors)
        await self._show(Toast(
            title="Config Load Error",
            message=f"Failed to load config:\n{lines}",
            variant=ToastVariant.ERROR,
            duration=10000,
        ))
        logger.info(f"Config load errors shown: {len(errors)} error(s)")
        self.loaded_config.clear_errors()

    async def _show(self, toast: Toast) -> None:
        try:
            await self.client.show_toast(toast)
        except Exception as e:
            logger.warning(f"Toast '{toast.title}' failed: {e}")
