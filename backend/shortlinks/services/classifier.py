"""Device and geo classification of an inbound redirect request."""

from dataclasses import dataclass
from typing import Optional

from ..utils.device import detect_browser, detect_device_type, detect_os
from ..utils.geo import GeoLookup, get_geo_lookup
from ..utils.validators import get_client_ip

MAX_HEADER_LENGTH = 512


@dataclass(frozen=True)
class DeviceInfo:
    device: str
    browser: str
    os: str
    country: Optional[str] = None
    country_name: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class RequestContext:
    """What the click recorder needs to know about one redirect request"""
    client_ip: str
    user_agent: str
    referrer: Optional[str]
    info: DeviceInfo


def classify(user_agent: Optional[str], client_ip: Optional[str],
             geo: Optional[GeoLookup] = None) -> DeviceInfo:
    """
    Classify a visitor from its user agent and IP.

    Deterministic for a given geo database; unresolvable addresses give
    None location fields rather than an error.
    """
    location = (geo or get_geo_lookup()).lookup(client_ip)
    return DeviceInfo(
        device=detect_device_type(user_agent),
        browser=detect_browser(user_agent),
        os=detect_os(user_agent),
        country=location.country_code,
        country_name=location.country_name,
        city=location.city,
    )


def build_request_context(user_agent: Optional[str], peer_address: Optional[str],
                          forwarded_for: Optional[str], referrer: Optional[str],
                          geo: Optional[GeoLookup] = None) -> RequestContext:
    """Extract the client IP, truncate raw headers and classify the visitor"""
    client_ip = get_client_ip(forwarded_for, peer_address)
    user_agent = (user_agent or "")[:MAX_HEADER_LENGTH]
    return RequestContext(
        client_ip=client_ip,
        user_agent=user_agent,
        referrer=referrer[:MAX_HEADER_LENGTH] if referrer else None,
        info=classify(user_agent, client_ip, geo),
    )
