import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import geoip2.database
import structlog
from geoip2.errors import AddressNotFoundError
from maxminddb.errors import InvalidDatabaseError

logger = structlog.get_logger()

# Private IP patterns
PRIVATE_IP_PATTERNS = [
    re.compile(r'^127\.'),  # Loopback
    re.compile(r'^10\.'),  # Class A private
    re.compile(r'^172\.(1[6-9]|2[0-9]|3[0-1])\.'),  # Class B private
    re.compile(r'^192\.168\.'),  # Class C private
    re.compile(r'^169\.254\.'),  # Link-local
    re.compile(r'^::1$'),  # IPv6 loopback
    re.compile(r'^f[cd][0-9a-f]{2}:', re.IGNORECASE),  # IPv6 unique local
    re.compile(r'^fe80:', re.IGNORECASE),  # IPv6 link-local
]


def is_private_ip(ip: Optional[str]) -> bool:
    """Check if IP address is private/local (or missing)"""
    if not ip or ip == "unknown":
        return True
    for pattern in PRIVATE_IP_PATTERNS:
        if pattern.match(ip):
            return True
    return False


@dataclass(frozen=True)
class GeoData:
    """Resolved location; every field is None when unknown"""
    country_code: Optional[str] = None
    country_name: Optional[str] = None
    city: Optional[str] = None


UNKNOWN = GeoData()


class GeoLookup:
    """
    Offline IP to location lookup backed by a MaxMind City database.

    Without a database file every address resolves to UNKNOWN. No network
    calls are ever made.
    """

    def __init__(self, database_path: Optional[str] = None):
        self._reader = None
        if database_path:
            self._open(database_path)

    def _open(self, database_path: str) -> None:
        path = Path(database_path)
        if not path.exists():
            logger.warning("GeoIP database not found", path=str(path))
            return
        try:
            self._reader = geoip2.database.Reader(str(path))
            logger.info("GeoIP database loaded", path=str(path))
        except (OSError, InvalidDatabaseError) as e:
            logger.error("Failed to load GeoIP database", path=str(path), error=str(e))

    @property
    def enabled(self) -> bool:
        return self._reader is not None

    def lookup(self, ip: Optional[str]) -> GeoData:
        if self._reader is None or is_private_ip(ip):
            return UNKNOWN
        try:
            response = self._reader.city(ip)
        except (AddressNotFoundError, ValueError):
            return UNKNOWN
        return GeoData(
            country_code=response.country.iso_code,
            country_name=response.country.name,
            city=response.city.name,
        )

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None


_geo_lookup: Optional[GeoLookup] = None


def get_geo_lookup() -> GeoLookup:
    """Get the process-wide lookup, opening the configured database on first use."""
    global _geo_lookup
    if _geo_lookup is None:
        from ..config import settings
        _geo_lookup = GeoLookup(settings.GEOIP_DATABASE_PATH or None)
    return _geo_lookup


def close_geo_lookup() -> None:
    global _geo_lookup
    if _geo_lookup is not None:
        _geo_lookup.close()
        _geo_lookup = None
