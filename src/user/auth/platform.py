"""
Client platform detection.

Classifies a request by its headers into one of a closed set of platform
tags and extracts coarse device metadata. Pure: no I/O, no state.
"""

from collections.abc import Mapping, Sequence
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from src.main.config import config

PLATFORM_HEADER = "x-platform"
DEVICE_ID_HEADER = "x-device-id"
DEVICE_MODEL_HEADER = "x-device-model"
API_KEY_HEADER = "x-api-key"

BROWSER_MARKERS = ("mozilla", "chrome", "safari", "firefox", "edg/", "opera")
API_CLIENT_MARKERS = (
    "curl",
    "httpie",
    "postman",
    "insomnia",
    "python-requests",
    "python-httpx",
    "aiohttp",
    "axios",
    "go-http-client",
    "java/",
    "wget",
)
OS_MARKERS = (
    ("android", "android"),
    ("iphone", "ios"),
    ("ipad", "ios"),
    ("ios", "ios"),
    ("cfnetwork", "ios"),
    ("windows", "windows"),
    ("mac os", "macos"),
    ("macintosh", "macos"),
    ("linux", "linux"),
)


class Platform(StrEnum):
    WEB = "web"
    MOBILE = "mobile"
    API = "api"
    UNKNOWN = "unknown"

    @classmethod
    def values(cls) -> set[str]:
        return {item.value for item in cls.__members__.values()}


class PlatformInfo(BaseModel):
    type: Platform
    user_agent: str = ""
    device_id: str | None = None
    device_model: str | None = None
    os: str | None = None
    is_native: bool = False

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    @property
    def device_label(self) -> str | None:
        """Identifier stored alongside refresh tokens for this device."""
        return self.device_id or self.device_model


def _lower_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {str(k).lower(): str(v) for k, v in headers.items()}


def _detect_os(user_agent: str) -> str | None:
    for marker, os_name in OS_MARKERS:
        if marker in user_agent:
            return os_name
    return None


def _classify(
    headers: dict[str, str], user_agent: str, mobile_markers: Sequence[str]
) -> Platform:
    explicit = headers.get(PLATFORM_HEADER, "").strip().lower()
    if explicit in Platform.values() and explicit != Platform.UNKNOWN:
        return Platform(explicit)

    if any(marker in user_agent for marker in mobile_markers):
        return Platform.MOBILE
    if any(marker in user_agent for marker in API_CLIENT_MARKERS):
        return Platform.API
    if any(marker in user_agent for marker in BROWSER_MARKERS):
        return Platform.WEB
    if API_KEY_HEADER in headers:
        return Platform.API
    return Platform.UNKNOWN


def detect_platform(
    headers: Mapping[str, str],
    mobile_markers: Sequence[str] | None = None,
) -> PlatformInfo:
    """
    Classify a request by its headers.

    Resolution order:
        1. an explicit ``X-Platform`` header naming a known platform;
        2. a native mobile client marker in the user agent;
        3. a known HTTP client / tooling marker in the user agent;
        4. a browser marker in the user agent;
        5. presence of ``X-API-Key``;
        6. otherwise ``unknown``.

    Args:
        headers: Request headers (any case-insensitive or plain mapping)
        mobile_markers: Override for the configured mobile user-agent markers

    Returns:
        PlatformInfo: platform tag plus coarse device metadata
    """
    normalized = _lower_headers(headers)
    raw_user_agent = normalized.get("user-agent", "")
    user_agent = raw_user_agent.lower()
    markers = (
        mobile_markers if mobile_markers is not None else config.auth.MOBILE_USER_AGENTS
    )

    platform = _classify(normalized, user_agent, markers)

    return PlatformInfo(
        type=platform,
        user_agent=raw_user_agent,
        device_id=normalized.get(DEVICE_ID_HEADER) or None,
        device_model=normalized.get(DEVICE_MODEL_HEADER) or None,
        os=_detect_os(user_agent),
        is_native=platform == Platform.MOBILE,
    )


def platform_from_tag(tag: str, device_id: str | None = None) -> PlatformInfo:
    """Rebuild a PlatformInfo from a tag stored in token claims."""
    platform = Platform(tag) if tag in Platform.values() else Platform.UNKNOWN
    return PlatformInfo(
        type=platform,
        device_id=device_id,
        is_native=platform == Platform.MOBILE,
    )
