"""Install link codec - Parse and generate protocol URLs.

Wire formats:
- RFC (current):  <scheme>://plugin/install?type=mcp&id=<id>&schema=<json>&marketId=<id>&meta_<key>=<value>
- Legacy:         <scheme>://mcp/install?identifier=<id>&source=<tag>&manifestUrl=<url>&version=<v>
                  &autoConfig=true&presetConfig=<json>
- JSON record:    <scheme>://<type>/<action>?<percent-encoded JSON object of either parameter set>

Parsing is total: every failure is logged at debug level and comes back as
None, never as an exception or a partial result. Generation is programmer
controlled and fails fast.
"""

import json
import logging
from typing import Any
from typing import Literal
from urllib.parse import SplitResult
from urllib.parse import parse_qsl
from urllib.parse import quote
from urllib.parse import unquote
from urllib.parse import urlencode
from urllib.parse import urlsplit

from pydantic import ValidationError

from .channel import SUPPORTED_SCHEMES
from .channel import AppChannel
from .channel import get_protocol_scheme
from .exceptions import ProtocolGenerateError
from .exceptions import ProtocolParseError
from .models import InstallRequest
from .models import ParsedProtocolUrl
from .models import ProtocolGrammar
from .schema import McpInstallParams
from .schema import validate_plugin_schema
from .sources import ProtocolSource

logger = logging.getLogger(__name__)

KNOWN_URL_TYPES = ("plugin", "mcp")
KNOWN_ACTIONS = ("install", "configure", "update")
META_PREFIX = "meta_"


def _dump_json(value: Any) -> str:
    """Compact JSON, non-ASCII kept as-is (percent-encoding happens later)."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _split_route(url: str) -> tuple[SplitResult, str, str]:
    """Split URL and check scheme and {url_type}/{action} route.

    The route is read from the host followed by the path, so both
    `lobehub://plugin/install` and `lobehub:///plugin/install` resolve to
    ("plugin", "install").

    Raises:
        ProtocolParseError: If the URL is malformed, the scheme unknown, or the route unrecognized
    """
    if not isinstance(url, str):
        raise ProtocolParseError("Protocol URL is not a string", context={"type": type(url).__name__})

    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise ProtocolParseError(f"Malformed URL: {e}") from e

    if parts.scheme not in SUPPORTED_SCHEMES:
        raise ProtocolParseError("Unknown scheme", context={"scheme": parts.scheme})

    segments = [segment for segment in [parts.netloc, *parts.path.split("/")] if segment]
    if len(segments) < 2:
        raise ProtocolParseError("Missing route segments", context={"segments": segments})

    url_type, action = segments[0], segments[1]
    if url_type not in KNOWN_URL_TYPES or action not in KNOWN_ACTIONS:
        raise ProtocolParseError("Unrecognized route", context={"url_type": url_type, "action": action})

    return parts, url_type, action


def _read_params(query: str) -> tuple[dict[str, Any], bool]:
    """Read query parameters as a record.

    Returns:
        (params, from_json) where from_json tells whether the whole query was a JSON object
    """
    decoded = unquote(query)
    if decoded.startswith("{"):
        try:
            record = json.loads(decoded)
        except (json.JSONDecodeError, RecursionError) as e:
            raise ProtocolParseError(f"Malformed JSON parameters: {e}") from e
        if not isinstance(record, dict):
            raise ProtocolParseError("JSON parameters are not an object")
        return record, True

    # First occurrence wins, like URLSearchParams.get()
    params: dict[str, Any] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        params.setdefault(key, value)
    return params, False


def _read_source(value: Any, default: ProtocolSource | None) -> ProtocolSource | None:
    """Absent source falls back to default; a present but unknown one is an error."""
    if value is None or value == "":
        return default
    try:
        return ProtocolSource(value)
    except ValueError as e:
        raise ProtocolParseError("Invalid source", context={"source": value}) from e


def _read_optional_str(params: dict[str, Any], key: str) -> str | None:
    value = params.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ProtocolParseError(f"Parameter '{key}' is not a string", context={key: value})
    return value


def _load_schema(value: Any) -> Any:
    """Decode the schema parameter (JSON text, or already an object in JSON records)."""
    if not isinstance(value, str):
        return value

    # Tolerate producers that percent-encoded the JSON before form encoding
    text = value if value.lstrip().startswith("{") else unquote(value)
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        raise ProtocolParseError(f"Malformed schema JSON: {e}") from e


def _load_preset_config(value: Any) -> Any:
    """Decode presetConfig, which legacy producers percent-encode before form encoding."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        return value
    try:
        return json.loads(unquote(value))
    except (json.JSONDecodeError, RecursionError) as e:
        raise ProtocolParseError(f"Malformed presetConfig JSON: {e}") from e


def _read_meta_params(params: dict[str, Any]) -> dict[str, str] | None:
    meta_params: dict[str, str] = {}
    for key, value in params.items():
        if not key.startswith(META_PREFIX) or key == META_PREFIX:
            continue
        if not isinstance(value, str):
            raise ProtocolParseError(f"Meta parameter '{key}' is not a string")
        meta_params[key[len(META_PREFIX) :]] = value
    return meta_params or None


def _parse_rfc(params: dict[str, Any], url_type: str, action: str) -> ParsedProtocolUrl:
    """Extract an RFC link: type=mcp&id=...&schema=...&marketId=...&meta_*=..."""
    plugin_id = _read_optional_str(params, "id")
    if plugin_id is None:
        raise ProtocolParseError("Missing required parameter 'id'")

    schema = validate_plugin_schema(_load_schema(params.get("schema")))
    if schema is None:
        raise ProtocolParseError("Invalid plugin schema", context={"id": plugin_id})

    return ParsedProtocolUrl(
        grammar=ProtocolGrammar.RFC,
        url_type=url_type,  # type: ignore[arg-type]
        action=action,  # type: ignore[arg-type]
        schema=schema,
        plugin_id=plugin_id,
        market_id=_read_optional_str(params, "marketId"),
        meta_params=_read_meta_params(params),
        source=_read_source(params.get("source"), default=None),
    )


def _parse_legacy(params: dict[str, Any], url_type: str, action: str, from_json: bool) -> ParsedProtocolUrl:
    """Extract a legacy link: identifier=...&source=...&manifestUrl=...&version=...&autoConfig=...&presetConfig=..."""
    source = _read_source(params.get("source"), default=ProtocolSource.OFFICIAL)

    if from_json:
        record = {**params, "source": source}
    else:
        record = {
            "identifier": params.get("identifier"),
            "source": source,
            "manifestUrl": _read_optional_str(params, "manifestUrl"),
            "version": _read_optional_str(params, "version"),
            "autoConfig": params.get("autoConfig") == "true",
            "presetConfig": _load_preset_config(params.get("presetConfig")),
        }

    try:
        install_params = McpInstallParams.model_validate(record)
    except ValidationError as e:
        raise ProtocolParseError(
            "Invalid legacy install parameters",
            context={"errors": [".".join(str(part) for part in error["loc"]) for error in e.errors()]},
        ) from e

    return ParsedProtocolUrl(
        grammar=ProtocolGrammar.LEGACY,
        url_type=url_type,  # type: ignore[arg-type]
        action=action,  # type: ignore[arg-type]
        params=install_params,
        source=install_params.source,
    )


def parse_protocol_route(url: str) -> tuple[str, str] | None:
    """
    Read only the (url_type, action) route of a protocol URL.

    Args:
        url: Untrusted URL string

    Returns:
        (url_type, action) if scheme and route are recognized, None otherwise

    Example:
        >>> parse_protocol_route("lobehub://plugin/install?type=mcp")
        ('plugin', 'install')
    """
    try:
        _, url_type, action = _split_route(url)
    except ProtocolParseError as e:
        logger.debug(f"Unroutable protocol URL: {e}")
        return None
    return url_type, action


def parse_protocol_url(url: str) -> ParsedProtocolUrl | None:
    """
    Parse an install link of any supported scheme variant and grammar.

    Process:
    1. Split URL; scheme must be lobehub, lobehub-beta or lobehub-nightly
    2. Route (host + path) must be a known {url_type}/{action} pair
    3. Read parameters (form-encoded, or a whole-query JSON object)
    4. type=mcp with schema -> RFC grammar; identifier -> legacy grammar
    5. Validate fields and embedded schema

    Args:
        url: Untrusted URL string

    Returns:
        ParsedProtocolUrl, or None if any step fails

    Example:
        >>> parsed = parse_protocol_url("lobehub://mcp/install?identifier=figma")
        >>> parsed.params.source
        <ProtocolSource.OFFICIAL: 'official'>
        >>> parse_protocol_url("https://example.com") is None
        True
    """
    try:
        parts, url_type, action = _split_route(url)
        params, from_json = _read_params(parts.query)

        if params.get("type") == "mcp" and "schema" in params:
            return _parse_rfc(params, url_type, action)
        if "identifier" in params:
            return _parse_legacy(params, url_type, action, from_json=from_json)

        raise ProtocolParseError("No install parameters", context={"keys": sorted(params)})

    except ProtocolParseError as e:
        logger.debug(f"Rejected protocol URL: {e}")
        return None
    except (ValueError, TypeError, RecursionError) as e:
        logger.debug(f"Failed to parse protocol URL: {e}")
        return None


def generate_rfc_protocol_url(request: InstallRequest, channel: AppChannel = AppChannel.STABLE) -> str:
    """
    Generate an RFC install link for the given channel's scheme.

    Args:
        request: Install request (schema.identifier must equal id)
        channel: Release channel whose scheme to use

    Returns:
        <scheme>://plugin/install?type=mcp&id=...&schema=...[&marketId=...][&source=...][&meta_<key>=...]

    Raises:
        ProtocolGenerateError: If schema.identifier differs from id, or a meta parameter name is empty

    Example:
        >>> url = generate_rfc_protocol_url(InstallRequest(id="edgeone-mcp", schema=schema, market_id="higress"))
        >>> url.startswith("lobehub://plugin/install?type=mcp&id=edgeone-mcp")
        True
    """
    if request.schema.identifier != request.id:
        raise ProtocolGenerateError(
            "Schema identifier must match the id parameter",
            context={"id": request.id, "identifier": request.schema.identifier},
        )

    if request.meta_params and "" in request.meta_params:
        raise ProtocolGenerateError(
            "Meta parameter names must be non-empty",
            context={"id": request.id, "meta_params": dict(request.meta_params)},
        )

    query: list[tuple[str, str]] = [
        ("type", "mcp"),
        ("id", request.id),
        ("schema", _dump_json(request.schema.to_wire())),
    ]
    if request.market_id:
        query.append(("marketId", request.market_id))
    if request.source is not None:
        query.append(("source", ProtocolSource(request.source).value))
    if request.meta_params:
        query.extend((f"{META_PREFIX}{key}", value) for key, value in request.meta_params.items())

    return f"{get_protocol_scheme(channel)}://plugin/install?{urlencode(query)}"


def generate_protocol_url(
    params: McpInstallParams,
    format: Literal["json", "query"] = "json",
    channel: AppChannel = AppChannel.STABLE,
) -> str:
    """
    Generate a legacy install link.

    Args:
        params: Legacy install parameters
        format: "json" puts the percent-encoded JSON record in the query,
                "query" writes flat parameters
        channel: Release channel whose scheme to use

    Returns:
        <scheme>://mcp/install?...

    Raises:
        ValueError: If format is unknown
    """
    base_url = f"{get_protocol_scheme(channel)}://mcp/install"

    if format == "json":
        return f"{base_url}?{quote(_dump_json(params.to_wire()), safe='')}"

    if format == "query":
        query: list[tuple[str, str]] = [
            ("identifier", params.identifier),
            ("source", ProtocolSource(params.source).value),
        ]
        if params.manifest_url:
            query.append(("manifestUrl", params.manifest_url))
        if params.version:
            query.append(("version", params.version))
        if params.auto_config:
            query.append(("autoConfig", "true"))
        if params.preset_config is not None:
            query.append(("presetConfig", quote(_dump_json(params.preset_config), safe="")))
        return f"{base_url}?{urlencode(query)}"

    raise ValueError(f"Unknown protocol URL format: {format!r}")
