"""Protocol dispatcher - Route decoded install links to the workflow.

One dispatcher is registered per {url_type}/{action} pair. It keeps no
mutable state between calls: every dispatch walks its own
idle -> routing -> delivered | rejected progression, so repeated and
concurrent calls are independent.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any
from typing import Literal

from .codec import parse_protocol_url
from .models import ParsedProtocolUrl
from .protocols import InstallWorkflowProtocol
from .schema import McpInstallParams
from .schema import PluginSchema
from .sources import ProtocolSource
from .sources import is_protocol_source_trusted

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    """Progress of a single dispatch."""

    IDLE = "idle"
    ROUTING = "routing"
    DELIVERED = "delivered"
    REJECTED = "rejected"


@dataclass(frozen=True)
class InstallRequestEvent:
    """Install request handed to the workflow."""

    plugin_id: str
    source_url: str
    schema: PluginSchema | None = None
    params: McpInstallParams | None = None
    market_id: str | None = None
    meta_params: dict[str, str] | None = None
    source: ProtocolSource | None = None
    requires_confirmation: bool = True
    type: Literal["install-request"] = "install-request"

    @classmethod
    def from_parsed(cls, parsed: ParsedProtocolUrl, source_url: str) -> "InstallRequestEvent":
        """Build the event from a parse result, classifying its declared source."""
        return cls(
            plugin_id=parsed.identifier,
            source_url=source_url,
            schema=parsed.schema,
            params=parsed.params,
            market_id=parsed.market_id,
            meta_params=parsed.meta_params,
            source=parsed.source,
            requires_confirmation=not is_protocol_source_trusted(parsed.source),
        )

    def to_payload(self) -> dict[str, Any]:
        """Convert to the {type, data} message shape used across the process boundary."""
        return {
            "type": self.type,
            "data": {
                "pluginId": self.plugin_id,
                "schema": self.schema.to_wire() if self.schema else None,
                "params": self.params.to_wire() if self.params else None,
                "marketId": self.market_id,
                "metaParams": self.meta_params,
                "source": self.source.value if self.source else None,
                "sourceUrl": self.source_url,
                "requiresConfirmation": self.requires_confirmation,
            },
        }


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of dispatching one URL."""

    url: str
    state: DispatchState
    reason: str | None = None
    event: InstallRequestEvent | None = None

    @property
    def success(self) -> bool:
        """True if the workflow accepted the request."""
        return self.state is DispatchState.DELIVERED


class ProtocolDispatcher:
    """
    Dispatch protocol URLs of one {url_type}/{action} pair to an install workflow.

    The dispatcher does not wait for user confirmation or for installation:
    success means the workflow accepted the hand-off.
    """

    def __init__(
        self,
        workflow: InstallWorkflowProtocol,
        url_type: str = "plugin",
        action: str = "install",
        type: str = "mcp",
    ):
        """Initialize dispatcher with app-provided workflow and registration.

        Args:
            workflow: Installation workflow receiving decoded requests
            url_type: Route category this dispatcher handles ("plugin" or legacy "mcp")
            action: Route action this dispatcher handles
            type: Payload type this dispatcher handles

        Example:
            >>> dispatcher = ProtocolDispatcher(workflow=InstallConfirmationWorkflow(prompt, installer))
            >>> result = await dispatcher.dispatch("lobehub://plugin/install?type=mcp&id=...")
        """
        self.workflow = workflow
        self.url_type = url_type
        self.action = action
        self.type = type

    @property
    def route(self) -> tuple[str, str]:
        """Route this dispatcher is registered for."""
        return self.url_type, self.action

    def _reject(self, url: str, reason: str, state: DispatchState) -> DispatchResult:
        logger.warning(f"[{self.url_type}/{self.action}] {state.value} -> rejected: {reason}")
        return DispatchResult(url=url, state=DispatchState.REJECTED, reason=reason)

    async def dispatch(self, url: str) -> DispatchResult:
        """
        Decode a raw URL and hand it to the workflow.

        Process:
        1. Decode (rejected as "unparseable" on failure)
        2. Check decoded type/action against registration (rejected as "route mismatch")
        3. Build InstallRequestEvent and deliver it (rejected as "delivery failed" if not accepted)

        Args:
            url: Raw URL from the transport

        Returns:
            DispatchResult in delivered or rejected state
        """
        state = DispatchState.IDLE
        logger.debug(f"[{self.url_type}/{self.action}] {state.value}: received protocol URL")

        state = DispatchState.ROUTING
        parsed = parse_protocol_url(url)
        if parsed is None:
            return self._reject(url, "unparseable", state)

        logger.debug(
            f"[{self.url_type}/{self.action}] {state.value}: decoded {parsed.grammar.value} link "
            f"(type={parsed.type}, url_type={parsed.url_type}, action={parsed.action}, "
            f"plugin={parsed.identifier})"
        )

        if (parsed.url_type, parsed.action, parsed.type) != (self.url_type, self.action, self.type):
            return self._reject(
                url, f"route mismatch ({parsed.type} {parsed.url_type}/{parsed.action})", state
            )

        event = InstallRequestEvent.from_parsed(parsed, source_url=url)

        try:
            accepted = await self.workflow.request_install(event)
        except Exception:
            logger.exception(f"[{self.url_type}/{self.action}] Workflow raised while accepting {event.plugin_id}")
            accepted = False

        if not accepted:
            return self._reject(url, "delivery failed", state)

        logger.info(
            f"[{self.url_type}/{self.action}] Delivered install request for {event.plugin_id} "
            f"(market={event.market_id}, confirmation required={event.requires_confirmation})"
        )
        return DispatchResult(url=url, state=DispatchState.DELIVERED, event=event)
