"""Release channel configuration - Channel to protocol scheme mapping.

The channel is injected by the app (it knows how it was built); this module
never reads process environment.
"""

from dataclasses import dataclass
from enum import Enum


class AppChannel(str, Enum):
    """Release channel of the running build."""

    STABLE = "stable"
    BETA = "beta"
    NIGHTLY = "nightly"


PROTOCOL_SCHEMES: dict[AppChannel, str] = {
    AppChannel.STABLE: "lobehub",
    AppChannel.BETA: "lobehub-beta",
    AppChannel.NIGHTLY: "lobehub-nightly",
}

# Every channel's scheme is accepted when decoding, so cross-channel links still parse
SUPPORTED_SCHEMES = frozenset(PROTOCOL_SCHEMES.values())


@dataclass(frozen=True)
class VersionInfo:
    """Channel and protocol scheme of a build."""

    channel: AppChannel
    protocol_scheme: str


def resolve_channel(update_channel: str | None = None, package_name: str | None = None) -> AppChannel:
    """
    Resolve the release channel from build values supplied by the app.

    Nightly wins over beta: a nightly update channel selects nightly even when
    the package name is a beta one.

    Args:
        update_channel: Update channel the build was published on (e.g. "nightly")
        package_name: Application package name (beta builds contain "beta")

    Returns:
        Resolved AppChannel (stable when nothing matches)

    Example:
        >>> resolve_channel(update_channel="nightly")
        <AppChannel.NIGHTLY: 'nightly'>
        >>> resolve_channel(package_name="lobehub-desktop-beta")
        <AppChannel.BETA: 'beta'>
    """
    if update_channel == AppChannel.NIGHTLY.value:
        return AppChannel.NIGHTLY
    if package_name and "beta" in package_name:
        return AppChannel.BETA
    return AppChannel.STABLE


def get_protocol_scheme(channel: AppChannel = AppChannel.STABLE) -> str:
    """Get the protocol scheme (without ':') registered for a channel."""
    return PROTOCOL_SCHEMES[AppChannel(channel)]


def get_version_info(channel: AppChannel = AppChannel.STABLE) -> VersionInfo:
    """Get channel and protocol scheme together."""
    channel = AppChannel(channel)
    return VersionInfo(channel=channel, protocol_scheme=PROTOCOL_SCHEMES[channel])
