import re
from typing import Optional

DESKTOP = "desktop"
MOBILE = "mobile"
TABLET = "tablet"

UNKNOWN = "Unknown"

# Checked before mobile: Android tablets omit the "Mobile" token
TABLET_PATTERNS = [
    re.compile(r'iPad', re.IGNORECASE),
    re.compile(r'Tablet', re.IGNORECASE),
    re.compile(r'Kindle|Silk/', re.IGNORECASE),
    re.compile(r'PlayBook', re.IGNORECASE),
    re.compile(r'Android(?!.*Mobile)', re.IGNORECASE),
]

MOBILE_PATTERNS = [
    re.compile(r'iPhone|iPod', re.IGNORECASE),
    re.compile(r'Android.*Mobile', re.IGNORECASE),
    re.compile(r'Windows Phone|IEMobile', re.IGNORECASE),
    re.compile(r'BlackBerry|BB10', re.IGNORECASE),
    re.compile(r'Opera Mini', re.IGNORECASE),
    re.compile(r'Mobile', re.IGNORECASE),
]

# (name, pattern with the version in group 1); first match wins
BROWSER_PATTERNS = [
    ("Edge", re.compile(r'(?:Edg|Edge|EdgA|EdgiOS)/(\d+)')),
    ("Opera", re.compile(r'(?:OPR|Opera)[/ ](\d+)')),
    ("Samsung Internet", re.compile(r'SamsungBrowser/(\d+)')),
    ("Firefox", re.compile(r'(?:Firefox|FxiOS)/(\d+)')),
    ("Chrome", re.compile(r'(?:Chrome|CriOS)/(\d+)')),
    ("Safari", re.compile(r'Version/(\d+)[\d.]* (?:Mobile/\S+ )?Safari/')),
    ("Internet Explorer", re.compile(r'(?:MSIE |Trident/.*rv:)(\d+)')),
]

WINDOWS_VERSIONS = {
    "10.0": "10",
    "6.3": "8.1",
    "6.2": "8",
    "6.1": "7",
    "6.0": "Vista",
    "5.1": "XP",
}

# (name, pattern, version group or None); first match wins
OS_PATTERNS = [
    ("Windows Phone", re.compile(r'Windows Phone(?: OS)? ([\d.]+)')),
    ("Windows", re.compile(r'Windows NT ([\d.]+)')),
    ("iOS", re.compile(r'(?:iPhone|CPU) OS (\d+(?:_\d+)*)')),
    ("Mac OS", re.compile(r'Mac OS X (\d+(?:[_.]\d+)*)')),
    ("Android", re.compile(r'Android (\d+(?:\.\d+)*)')),
    ("Chrome OS", re.compile(r'CrOS \S+ ([\d.]+)')),
    ("Linux", re.compile(r'Linux()')),
]


def detect_device_type(user_agent: Optional[str]) -> str:
    """Classify as desktop, mobile or tablet; anything unrecognized is desktop"""
    if not user_agent:
        return DESKTOP
    for pattern in TABLET_PATTERNS:
        if pattern.search(user_agent):
            return TABLET
    for pattern in MOBILE_PATTERNS:
        if pattern.search(user_agent):
            return MOBILE
    return DESKTOP


def detect_browser(user_agent: Optional[str]) -> str:
    """Browser family with major version, e.g. "Chrome 120"."""
    if not user_agent:
        return UNKNOWN
    for name, pattern in BROWSER_PATTERNS:
        match = pattern.search(user_agent)
        if match:
            return f"{name} {match.group(1)}"
    return UNKNOWN


def detect_os(user_agent: Optional[str]) -> str:
    """Operating system with version when the agent reports one"""
    if not user_agent:
        return UNKNOWN
    for name, pattern in OS_PATTERNS:
        match = pattern.search(user_agent)
        if not match:
            continue
        version = match.group(1).replace("_", ".")
        if name == "Windows":
            version = WINDOWS_VERSIONS.get(version, version)
        return f"{name} {version}".strip()
    return UNKNOWN
