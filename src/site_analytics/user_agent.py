"""
User-Agent classification for the device and browser breakdowns.

Pageviews store the raw User-Agent header seen at ingestion. The breakdown
queries classify it on read into a browser family and a device category.

Pattern order matters: Chromium forks advertise "Chrome" and Chrome
advertises "Safari", so the specific names are checked first.
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache


class DeviceType(str, Enum):
    """Device category."""
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"
    TV = "tv"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        """Display name used in breakdown tables."""
        return DEVICE_LABELS[self]


DEVICE_LABELS = {
    DeviceType.DESKTOP: "Desktop",
    DeviceType.MOBILE: "Mobile",
    DeviceType.TABLET: "Tablet",
    DeviceType.TV: "TV",
    DeviceType.UNKNOWN: "Unknown",
}

UNKNOWN_BROWSER = "Unknown"


@dataclass(frozen=True)
class UserAgentInfo:
    """Browser family and device category for one User-Agent string."""
    browser: str = UNKNOWN_BROWSER
    device_type: DeviceType = DeviceType.UNKNOWN

    @property
    def device_label(self) -> str:
        return self.device_type.label


# (regex, browser family)
BROWSER_PATTERNS = [
    (r"Edg(?:e|A|iOS)?/", "Edge"),
    (r"OPR/|Opera", "Opera"),
    (r"Vivaldi/", "Vivaldi"),
    (r"Brave/", "Brave"),
    (r"SamsungBrowser/", "Samsung Internet"),
    (r"UCBrowser/", "UC Browser"),
    (r"YaBrowser/", "Yandex"),
    (r"DuckDuckGo/", "DuckDuckGo"),
    (r"Firefox/|FxiOS/", "Firefox"),
    (r"CriOS/|Chrome/", "Chrome"),
    (r"Chromium/", "Chromium"),
    (r"Safari/", "Safari"),
    (r"MSIE |Trident/", "Internet Explorer"),
    (r"Instagram", "Instagram WebView"),
    (r"FBAN|FBAV", "Facebook WebView"),
]

TV_PATTERN = re.compile(
    r"SmartTV|Smart-TV|Web0S|NetCast|Tizen|Roku|BRAVIA|AppleTV|tvOS|FireTV|PlayStation|Xbox",
    re.IGNORECASE,
)
# Android without "Mobile" is a tablet
TABLET_PATTERN = re.compile(r"iPad|Android(?!.*Mobile)|Tablet|Kindle|Silk|PlayBook", re.IGNORECASE)
MOBILE_PATTERN = re.compile(
    r"Mobile|iPhone|iPod|BlackBerry|IEMobile|Opera Mini|Windows Phone",
    re.IGNORECASE,
)
DESKTOP_PATTERN = re.compile(r"Windows NT|Macintosh|X11|CrOS|Linux")

_COMPILED_BROWSERS = [(re.compile(p, re.IGNORECASE), name) for p, name in BROWSER_PATTERNS]


def detect_device_type(ua: str) -> DeviceType:
    """Detect device category. TVs first, tablets before phones."""
    if not ua:
        return DeviceType.UNKNOWN
    if TV_PATTERN.search(ua):
        return DeviceType.TV
    if TABLET_PATTERN.search(ua):
        return DeviceType.TABLET
    if MOBILE_PATTERN.search(ua):
        return DeviceType.MOBILE
    if DESKTOP_PATTERN.search(ua):
        return DeviceType.DESKTOP
    return DeviceType.UNKNOWN


def detect_browser(ua: str) -> str:
    if not ua:
        return UNKNOWN_BROWSER
    for pattern, name in _COMPILED_BROWSERS:
        if pattern.search(ua):
            return name
    return UNKNOWN_BROWSER


@lru_cache(maxsize=2048)
def classify_user_agent(user_agent: str | None) -> UserAgentInfo:
    """
    Classify a User-Agent string.

    Examples:
        >>> classify_user_agent("Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36")
        UserAgentInfo(browser='Chrome', device_type=<DeviceType.DESKTOP: 'desktop'>)

        >>> classify_user_agent("")
        UserAgentInfo(browser='Unknown', device_type=<DeviceType.UNKNOWN: 'unknown'>)
    """
    if not user_agent or not user_agent.strip():
        return UserAgentInfo()
    return UserAgentInfo(
        browser=detect_browser(user_agent),
        device_type=detect_device_type(user_agent),
    )
