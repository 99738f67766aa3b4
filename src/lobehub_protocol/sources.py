"""Installation source tags and trust classification.

Only classifies the declared source; enforcing anything is left to the
installation workflow, which must ask the user before installing from an
untrusted source.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class ProtocolSource(str, Enum):
    """Declared origin of an install request."""

    OFFICIAL = "official"
    COMMUNITY = "community"
    THIRD_PARTY = "third_party"

    # Legacy tags still emitted by older link producers
    GITHUB_OFFICIAL = "github_official"
    DEVELOPER = "developer"


TRUSTED_SOURCES = frozenset(
    {
        ProtocolSource.OFFICIAL,
        ProtocolSource.GITHUB_OFFICIAL,
        # TODO: check community links against the market allow-list once it is published
        ProtocolSource.COMMUNITY,
    }
)


def is_protocol_source_trusted(source: ProtocolSource | str | None) -> bool:
    """
    Check whether an install source is pre-trusted.

    Unknown tags fail closed: anything that is not a recognized trusted source
    requires explicit user confirmation downstream.

    Args:
        source: Source tag (enum member or raw string)

    Returns:
        True for official, github_official and community sources

    Example:
        >>> is_protocol_source_trusted("official")
        True
        >>> is_protocol_source_trusted("third_party")
        False
        >>> is_protocol_source_trusted("unknown-tag")
        False
    """
    if source is None:
        return False

    try:
        tag = ProtocolSource(source)
    except ValueError:
        logger.debug(f"Unrecognized protocol source treated as untrusted: {source!r}")
        return False

    return tag in TRUSTED_SOURCES
