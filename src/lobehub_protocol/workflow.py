"""Install confirmation workflow - One confirmation dialog at a time.

Reference implementation of InstallWorkflowProtocol. Apps inject the
confirmation prompt (UI) and the plugin installer (store); this module owns
the ordering policy:

    idle -> confirming -> installing -> idle

- A request arriving while confirming replaces the pending confirmation.
- A request arriving while installing is queued (latest queued request wins)
  and starts once the installation finishes.
"""

import asyncio
import logging
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Any

from .dispatcher import InstallRequestEvent
from .protocols import ConfirmationPromptProtocol
from .protocols import HandledReporterProtocol
from .protocols import PluginInstallerProtocol
from .router import ProtocolUrlHandledReport
from .schema import ConnectionConfig
from .schema import HttpConfig
from .schema import PluginSchema
from .schema import SourcePlatform
from .sources import ProtocolSource

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    """State of the confirmation workflow."""

    IDLE = "idle"
    CONFIRMING = "confirming"
    INSTALLING = "installing"


@dataclass(frozen=True)
class InstallConfirmationInfo:
    """What the confirmation dialog shows for a request."""

    identifier: str
    name: str
    version: str
    description: str
    author: str
    config: ConnectionConfig
    homepage: str | None = None
    source: ProtocolSource | None = None
    verified: bool = False
    market_id: str | None = None
    platform: SourcePlatform | None = None


@dataclass(frozen=True)
class CustomPluginRecord:
    """Plugin entry handed to the store on confirmation."""

    identifier: str
    custom_params: dict[str, Any] = field(default_factory=dict)
    manifest: dict[str, Any] = field(default_factory=dict)
    type: str = "customPlugin"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for the store."""
        return asdict(self)


def build_confirmation_info(event: InstallRequestEvent) -> InstallConfirmationInfo:
    """
    Build dialog information for a request carrying a plugin schema.

    Raises:
        ValueError: If the event has no schema
    """
    if event.schema is None:
        raise ValueError(f"Install request for {event.plugin_id} carries no plugin schema")

    schema = event.schema
    return InstallConfirmationInfo(
        identifier=schema.identifier,
        name=schema.name,
        version=schema.version,
        description=schema.description,
        author=schema.author,
        homepage=schema.homepage,
        config=schema.config,
        source=event.source,
        verified=not event.requires_confirmation,
        market_id=event.market_id,
        platform=event.params.source_platform if event.params is not None else None,
    )


def build_custom_plugin(schema: PluginSchema) -> CustomPluginRecord:
    """Convert a validated schema to the store's custom plugin entry."""
    mcp = schema.config.model_dump(mode="json", exclude_none=True)
    mcp["headers"] = schema.config.headers if isinstance(schema.config, HttpConfig) else None

    return CustomPluginRecord(
        identifier=schema.identifier,
        custom_params={
            "avatar": "",
            "description": schema.description,
            "mcp": mcp,
            "title": schema.name,
        },
        manifest={
            "api": [],
            "identifier": schema.identifier,
            "meta": {
                "author": schema.author,
                "description": schema.description,
                "homepage": schema.homepage,
                "tags": [],
                "title": schema.name,
            },
            "type": "default",
            "version": schema.version,
        },
    )


class InstallConfirmationWorkflow:
    """
    Installation workflow with at most one pending confirmation.

    request_install() only accepts the hand-off; confirmation and installation
    run in a background task and their outcome goes to the reporter.
    """

    def __init__(
        self,
        prompt: ConfirmationPromptProtocol,
        installer: PluginInstallerProtocol,
        reporter: HandledReporterProtocol | None = None,
    ):
        """Initialize workflow with app-provided collaborators.

        Args:
            prompt: Shows the confirmation dialog
            installer: Installs and enables the plugin
            reporter: Optional sink for {success, error, url} reports
        """
        self.prompt = prompt
        self.installer = installer
        self.reporter = reporter
        self.state = WorkflowState.IDLE
        self._current: InstallRequestEvent | None = None
        self._queued: InstallRequestEvent | None = None
        self._task: asyncio.Task | None = None

    @property
    def current(self) -> InstallRequestEvent | None:
        """Request being confirmed or installed."""
        return self._current

    @property
    def queued(self) -> InstallRequestEvent | None:
        """Request waiting for the running installation to finish."""
        return self._queued

    async def request_install(self, event: InstallRequestEvent) -> bool:
        """Accept an install request (see module docstring for the ordering policy)."""
        if event.schema is None:
            # Legacy requests name a plugin without describing it; resolving the manifest needs network access
            logger.warning(f"Declining install request for {event.plugin_id}: no plugin schema")
            return False

        if self.state is WorkflowState.INSTALLING:
            if self._queued is not None:
                await self._report(self._queued, False, "Superseded by a newer install request")
            logger.debug(f"Queued install request for {event.plugin_id}")
            self._queued = event
            return True

        if self.state is WorkflowState.CONFIRMING and self._current is not None:
            replaced = self._current
            if self._task is not None:
                self._task.cancel()
            logger.debug(f"Replacing pending confirmation for {replaced.plugin_id} with {event.plugin_id}")
            self._start(event)
            await self._report(replaced, False, "Superseded by a newer install request")
            return True

        self._start(event)
        return True

    async def wait_idle(self) -> None:
        """Wait until no confirmation or installation is running."""
        while self._task is not None:
            task = self._task
            await asyncio.wait({task})
            if self._task is task:
                break

    def _start(self, event: InstallRequestEvent) -> None:
        self._current = event
        self.state = WorkflowState.CONFIRMING
        self._task = asyncio.create_task(self._run(event))

    async def _run(self, event: InstallRequestEvent) -> None:
        schema = event.schema
        if schema is None:
            logger.warning(f"Install request for {event.plugin_id} carries no plugin schema")
            await self._finish(event, False, "Install request carries no plugin schema")
            return

        try:
            confirmed = await self.prompt.confirm(build_confirmation_info(event))
        except asyncio.CancelledError:
            logger.debug(f"Confirmation for {event.plugin_id} was replaced")
            raise
        except Exception:
            logger.exception(f"Confirmation prompt failed for {event.plugin_id}")
            await self._finish(event, False, "Confirmation failed")
            return

        if not confirmed:
            logger.info(f"User declined installation of {schema.name}")
            await self._finish(event, False, "Installation cancelled")
            return

        self.state = WorkflowState.INSTALLING
        try:
            await self.installer.install(build_custom_plugin(schema))
            await self.installer.enable(schema.identifier)
        except Exception:
            logger.exception(f"Failed to install plugin {schema.identifier}")
            await self._finish(event, False, "Installation failed")
            return

        logger.info(f"Successfully installed plugin: {schema.name}")
        await self._finish(event, True, None)

    async def _finish(self, event: InstallRequestEvent, success: bool, error: str | None) -> None:
        if self._current is event:
            self._current = None
            self._task = None
            self.state = WorkflowState.IDLE
            if self._queued is not None:
                queued, self._queued = self._queued, None
                self._start(queued)

        await self._report(event, success, error)

    async def _report(self, event: InstallRequestEvent, success: bool, error: str | None) -> None:
        if self.reporter is None:
            return
        report = ProtocolUrlHandledReport(success=success, url=event.source_url, error=error)
        try:
            await self.reporter.protocol_url_handled(report)
        except Exception:
            logger.exception(f"Failed to report outcome for {event.plugin_id}")
