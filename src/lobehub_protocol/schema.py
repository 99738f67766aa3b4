"""Plugin descriptor schema - Validate descriptors carried by install links.

Descriptors arrive inside untrusted URLs, so the models are strict: no
coercion, no partial results. A descriptor either validates as a whole or is
treated as absent.
"""

import logging
from typing import Annotated
from typing import Any
from typing import Literal

from pydantic import AnyUrl
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import TypeAdapter
from pydantic import ValidationError
from pydantic import field_validator

from .sources import ProtocolSource

logger = logging.getLogger(__name__)

NonEmptyStr = Annotated[str, Field(min_length=1)]

_absolute_url = TypeAdapter(AnyUrl)


class StdioConfig(BaseModel):
    """Connection launched as a local process speaking MCP over stdio."""

    model_config = ConfigDict(frozen=True, strict=True)

    type: Literal["stdio"]
    command: NonEmptyStr
    args: list[str] | None = None
    env: dict[str, str] | None = None


class HttpConfig(BaseModel):
    """Connection to a remote MCP endpoint over HTTP."""

    model_config = ConfigDict(frozen=True, strict=True)

    type: Literal["http"]
    url: str
    headers: dict[str, str] | None = None

    @field_validator("url")
    @classmethod
    def _require_absolute_url(cls, value: str) -> str:
        # Validate only; the input string is kept as-is
        try:
            _absolute_url.validate_python(value)
        except ValidationError as e:
            raise ValueError(f"config.url must be an absolute URL, got {value!r}") from e
        return value


ConnectionConfig = Annotated[StdioConfig | HttpConfig, Field(discriminator="type")]


class PluginSchema(BaseModel):
    """
    Descriptor of the plugin an install link asks for.

    Embedded as JSON in the `schema` parameter of current install links.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    identifier: NonEmptyStr
    name: NonEmptyStr
    author: NonEmptyStr
    description: NonEmptyStr
    version: NonEmptyStr
    homepage: str | None = None
    config: ConnectionConfig

    def to_wire(self) -> dict[str, Any]:
        """Convert to the JSON-ready shape used on the wire (unset optionals omitted)."""
        return self.model_dump(mode="json", exclude_none=True)


class SourcePlatform(BaseModel):
    """Platform that produced a legacy install link (statistics and display only)."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str | None = None
    version: str | None = None


class McpInstallParams(BaseModel):
    """
    Install parameters of the legacy link format.

    Legacy links name the plugin and where it came from instead of embedding a
    descriptor. Wire names are camelCase; Python attributes are snake_case.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    identifier: NonEmptyStr
    source: ProtocolSource = ProtocolSource.OFFICIAL
    manifest_url: str | None = Field(default=None, alias="manifestUrl")
    version: str | None = None
    auto_config: bool = Field(default=False, alias="autoConfig")
    preset_config: dict[str, Any] | None = Field(default=None, alias="presetConfig")
    source_platform: SourcePlatform | None = Field(default=None, alias="sourcePlatform")

    def to_wire(self) -> dict[str, Any]:
        """Convert to the camelCase JSON-ready shape (unset optionals omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def validate_plugin_schema(raw: Any) -> PluginSchema | None:
    """
    Validate an unstructured value as a plugin descriptor.

    Checks:
    1. Value is a mapping (not a list or primitive)
    2. identifier, name, author, description, version are non-empty strings
    3. config.type is exactly "stdio" or "http"
    4. stdio: non-empty command; args is a list of strings; env maps strings to strings
    5. http: url is an absolute URL; headers maps strings to strings

    Args:
        raw: Decoded JSON value (usually the `schema` parameter)

    Returns:
        PluginSchema if every check passes, None otherwise (never a partial result)

    Example:
        >>> validate_plugin_schema({"identifier": "x"}) is None
        True
    """
    if isinstance(raw, PluginSchema):
        return raw

    if not isinstance(raw, dict):
        logger.debug(f"Plugin schema is not an object: {type(raw).__name__}")
        return None

    try:
        return PluginSchema.model_validate(raw)
    except ValidationError as e:
        locations = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
        logger.debug(f"Invalid plugin schema ({e.error_count()} errors): {locations}")
        return None
