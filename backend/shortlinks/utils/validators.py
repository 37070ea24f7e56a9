import ipaddress
from typing import Optional
from urllib.parse import urlparse

from .geo import is_private_ip

MAX_URL_LENGTH = 2048
MAX_IP_LENGTH = 45  # Width of the ip_address columns

# Hosts a short link may not point at, besides private/loopback addresses
BLOCKED_HOSTS = (
    'localhost',
    '0.0.0.0',
)


def is_valid_url(url: Optional[str]) -> tuple[bool, str]:
    """
    Validate if a URL is valid and safe.

    Args:
        url: The URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url:
        return False, "URL cannot be empty"

    if len(url) > MAX_URL_LENGTH:
        return False, f"URL is too long (max {MAX_URL_LENGTH} characters)"

    try:
        result = urlparse(url)
    except ValueError as e:
        return False, f"Invalid URL: {e}"

    # Must have scheme and netloc
    if not all([result.scheme, result.netloc]):
        return False, "Invalid URL format"

    # Only http and https
    if result.scheme not in ['http', 'https']:
        return False, "Only HTTP and HTTPS URLs are allowed"

    host = (result.hostname or "").lower()
    if host in BLOCKED_HOSTS or is_private_ip(host):
        return False, "Internal/private URLs are not allowed"

    return True, ""


def _parse_ip(value: Optional[str]) -> Optional[str]:
    """Normalized address, or None if the value is not an IP address"""
    if not value:
        return None
    try:
        address = str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None
    return address if len(address) <= MAX_IP_LENGTH else None


def get_client_ip(forwarded_for: Optional[str], peer_address: Optional[str]) -> str:
    """
    Resolve the client IP used for geo lookup and unique-click detection.

    Args:
        forwarded_for: Raw X-Forwarded-For header value, if any
        peer_address: Transport-level peer address

    Returns:
        Client IP address, or "unknown"

    The forwarded-for header is trusted as sent; a client not behind a
    sanitizing proxy can spoof it. An entry that is not an IP address is
    ignored in favour of the peer address.
    """
    if forwarded_for:
        # Take the first IP in the chain
        first = _parse_ip(forwarded_for.split(",")[0])
        if first:
            return first

    return _parse_ip(peer_address) or "unknown"
