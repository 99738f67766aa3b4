"""Install request and parse result data structures.

Both are ephemeral values: built, validated, handed on, discarded.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from .schema import McpInstallParams
from .schema import PluginSchema
from .sources import ProtocolSource

ProtocolAction = Literal["install", "configure", "update"]
ProtocolUrlType = Literal["plugin", "mcp"]


class ProtocolGrammar(str, Enum):
    """Wire encoding an install link was written in."""

    RFC = "rfc"  # type=mcp&id=...&schema=<json>
    LEGACY = "legacy"  # identifier=...&source=...


@dataclass(frozen=True)
class ParsedProtocolUrl:
    """Decoded install link.

    RFC links carry `schema` and `plugin_id`; legacy links carry `params`.
    """

    grammar: ProtocolGrammar
    url_type: ProtocolUrlType
    action: ProtocolAction
    type: Literal["mcp"] = "mcp"
    schema: PluginSchema | None = None
    params: McpInstallParams | None = None
    plugin_id: str | None = None
    market_id: str | None = None
    meta_params: dict[str, str] | None = None
    source: ProtocolSource | None = None

    @property
    def identifier(self) -> str:
        """Plugin identifier regardless of grammar."""
        if self.params is not None:
            return self.params.identifier
        if self.plugin_id:
            return self.plugin_id
        return self.schema.identifier if self.schema else ""


@dataclass(frozen=True)
class InstallRequest:
    """Input for generating an install link.

    An empty market_id or meta_params is stored as None.
    """

    id: str
    schema: PluginSchema
    market_id: str | None = None
    meta_params: dict[str, str] | None = None
    source: ProtocolSource | None = None

    def __post_init__(self):
        # Empty optionals are not written to the link, so store them as absent
        if self.market_id == "":
            object.__setattr__(self, "market_id", None)
        if self.meta_params is not None and not self.meta_params:
            object.__setattr__(self, "meta_params", None)
