"""Protocols for the collaborators around install link handling.

The library decodes and routes; apps provide the workflow, the confirmation
prompt, the plugin store and the transport that hears back.
"""

from typing import TYPE_CHECKING
from typing import Protocol

if TYPE_CHECKING:
    from .dispatcher import InstallRequestEvent
    from .router import ProtocolUrlHandledReport
    from .workflow import CustomPluginRecord
    from .workflow import InstallConfirmationInfo


class InstallWorkflowProtocol(Protocol):
    """Protocol for the installation workflow that receives decoded requests.

    Example implementations:
    - InstallConfirmationWorkflow: single-dialog confirmation flow (this package)
    - A window bridge broadcasting the event to a renderer process
    """

    async def request_install(self, event: "InstallRequestEvent") -> bool:
        """Hand an install request to the workflow.

        Args:
            event: Decoded and validated install request

        Returns:
            True if the workflow accepted the hand-off (not that the plugin got installed)
        """
        ...


class ConfirmationPromptProtocol(Protocol):
    """Protocol for asking the user to confirm an installation."""

    async def confirm(self, info: "InstallConfirmationInfo") -> bool:
        """Show the confirmation and return True if the user accepted."""
        ...


class PluginInstallerProtocol(Protocol):
    """Protocol for the plugin store that performs the installation."""

    async def install(self, plugin: "CustomPluginRecord") -> None:
        """Add the plugin to the store.

        Raises:
            Exception: If installation fails
        """
        ...

    async def enable(self, identifier: str) -> None:
        """Enable an installed plugin for the current agent."""
        ...


class HandledReporterProtocol(Protocol):
    """Protocol for reporting the final outcome of a protocol URL to the transport."""

    async def protocol_url_handled(self, report: "ProtocolUrlHandledReport") -> None:
        """Receive {success, error, url} once the URL is fully handled."""
        ...
