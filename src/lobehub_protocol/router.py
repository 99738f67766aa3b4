"""Protocol router - Transport-facing entry point for protocol URLs.

The transport hands over {url} whenever the OS opens the app with a
registered scheme; the router picks the dispatcher registered for the URL's
route and reports {success, error, url} back. Callers only ever see a generic
error message, never parse details.
"""

import logging
from dataclasses import asdict
from dataclasses import dataclass
from typing import Any

from .codec import parse_protocol_route
from .dispatcher import DispatchResult
from .dispatcher import ProtocolDispatcher

logger = logging.getLogger(__name__)

INVALID_LINK_MESSAGE = "Invalid install link"


@dataclass(frozen=True)
class ProtocolUrlHandledReport:
    """Outcome reported back to the transport."""

    success: bool
    url: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, dropping error when there is none."""
        data = asdict(self)
        if data["error"] is None:
            del data["error"]
        return data


class ProtocolRouter:
    """Route protocol URLs to dispatchers by {url_type}/{action}."""

    def __init__(self, dispatchers: list[ProtocolDispatcher] | None = None):
        self._dispatchers: dict[tuple[str, str], ProtocolDispatcher] = {}
        for dispatcher in dispatchers or []:
            self.register(dispatcher)

    def register(self, dispatcher: ProtocolDispatcher) -> None:
        """Register a dispatcher for its route (replaces an earlier one for the same route)."""
        if dispatcher.route in self._dispatchers:
            logger.warning(f"Replacing dispatcher for {dispatcher.route[0]}/{dispatcher.route[1]}")
        self._dispatchers[dispatcher.route] = dispatcher
        logger.debug(f"Registered dispatcher for {dispatcher.route[0]}/{dispatcher.route[1]}")

    def get_dispatcher(self, url_type: str, action: str) -> ProtocolDispatcher | None:
        return self._dispatchers.get((url_type, action))

    def list_routes(self) -> list[tuple[str, str]]:
        return list(self._dispatchers)

    async def handle_url(self, url: str) -> ProtocolUrlHandledReport:
        """
        Handle a raw URL from the transport.

        Args:
            url: Raw URL string

        Returns:
            Report with success flag; error is always the generic invalid-link message
        """
        route = parse_protocol_route(url)
        if route is None:
            logger.warning("Ignoring protocol URL with unrecognized scheme or route")
            return ProtocolUrlHandledReport(success=False, url=url, error=INVALID_LINK_MESSAGE)

        dispatcher = self.get_dispatcher(*route)
        if dispatcher is None:
            logger.warning(f"No dispatcher registered for {route[0]}/{route[1]}")
            return ProtocolUrlHandledReport(success=False, url=url, error=INVALID_LINK_MESSAGE)

        result: DispatchResult = await dispatcher.dispatch(url)
        if not result.success:
            return ProtocolUrlHandledReport(success=False, url=url, error=INVALID_LINK_MESSAGE)

        return ProtocolUrlHandledReport(success=True, url=url)

    async def handle_payload(self, payload: dict[str, Any]) -> ProtocolUrlHandledReport:
        """Handle the transport's {"url": ...} message."""
        url = payload.get("url")
        if not isinstance(url, str):
            logger.warning("Protocol payload without a url string")
            return ProtocolUrlHandledReport(success=False, url="", error=INVALID_LINK_MESSAGE)
        return await self.handle_url(url)
