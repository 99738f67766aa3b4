"""lobehub-protocol - Install links for MCP plugins.

Public API: parse, validate and generate lobehub:// install links, classify
their declared source, and route them to an installation workflow.

This is library mechanism; apps inject policy (release channel, workflow, UI, store).
"""

from .channel import AppChannel
from .channel import VersionInfo
from .channel import get_protocol_scheme
from .channel import get_version_info
from .channel import resolve_channel
from .codec import generate_protocol_url
from .codec import generate_rfc_protocol_url
from .codec import parse_protocol_route
from .codec import parse_protocol_url
from .dispatcher import DispatchResult
from .dispatcher import DispatchState
from .dispatcher import InstallRequestEvent
from .dispatcher import ProtocolDispatcher
from .exceptions import ProtocolError
from .exceptions import ProtocolGenerateError
from .exceptions import ProtocolParseError
from .models import InstallRequest
from .models import ParsedProtocolUrl
from .models import ProtocolGrammar
from .protocols import ConfirmationPromptProtocol
from .protocols import HandledReporterProtocol
from .protocols import InstallWorkflowProtocol
from .protocols import PluginInstallerProtocol
from .router import ProtocolRouter
from .router import ProtocolUrlHandledReport
from .schema import HttpConfig
from .schema import McpInstallParams
from .schema import PluginSchema
from .schema import SourcePlatform
from .schema import StdioConfig
from .schema import validate_plugin_schema
from .sources import ProtocolSource
from .sources import is_protocol_source_trusted
from .workflow import CustomPluginRecord
from .workflow import InstallConfirmationInfo
from .workflow import InstallConfirmationWorkflow
from .workflow import WorkflowState
from .workflow import build_confirmation_info
from .workflow import build_custom_plugin

__all__ = [
    # Channel
    "AppChannel",
    "VersionInfo",
    "get_protocol_scheme",
    "get_version_info",
    "resolve_channel",
    # Schema
    "PluginSchema",
    "StdioConfig",
    "HttpConfig",
    "McpInstallParams",
    "SourcePlatform",
    "validate_plugin_schema",
    # Sources
    "ProtocolSource",
    "is_protocol_source_trusted",
    # Codec
    "InstallRequest",
    "ParsedProtocolUrl",
    "ProtocolGrammar",
    "parse_protocol_url",
    "parse_protocol_route",
    "generate_rfc_protocol_url",
    "generate_protocol_url",
    # Dispatch
    "ProtocolDispatcher",
    "DispatchResult",
    "DispatchState",
    "InstallRequestEvent",
    "ProtocolRouter",
    "ProtocolUrlHandledReport",
    # Workflow
    "InstallConfirmationWorkflow",
    "InstallConfirmationInfo",
    "CustomPluginRecord",
    "WorkflowState",
    "build_confirmation_info",
    "build_custom_plugin",
    # Collaborator protocols
    "InstallWorkflowProtocol",
    "ConfirmationPromptProtocol",
    "PluginInstallerProtocol",
    "HandledReporterProtocol",
    # Exceptions
    "ProtocolError",
    "ProtocolGenerateError",
    "ProtocolParseError",
]

__version__ = "0.1.0"
