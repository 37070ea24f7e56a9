import pytest

from shortlinks.services.classifier import build_request_context, classify
from shortlinks.utils.device import detect_browser, detect_device_type, detect_os
from shortlinks.utils.geo import GeoData, GeoLookup, is_private_ip
from shortlinks.utils.validators import get_client_ip, is_valid_url

from .conftest import CHROME_DESKTOP, SAFARI_IPHONE, FakeGeo

IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
ANDROID_PHONE = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
ANDROID_TABLET = (
    "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.2210.91"
)
FIREFOX_MAC = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:121.0) Gecko/20100101 Firefox/121.0"
SAFARI_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15"
)


@pytest.mark.parametrize("user_agent, device, browser, os_name", [
    (SAFARI_IPHONE, "mobile", "Safari 17", "iOS 17.0"),
    (IPAD, "tablet", "Safari 17", "iOS 17.0"),
    (ANDROID_PHONE, "mobile", "Chrome 120", "Android 14"),
    (ANDROID_TABLET, "tablet", "Chrome 119", "Android 13"),
    (CHROME_DESKTOP, "desktop", "Chrome 120", "Windows 10"),
    (EDGE_WINDOWS, "desktop", "Edge 120", "Windows 10"),
    (FIREFOX_MAC, "desktop", "Firefox 121", "Mac OS 10.15"),
    (SAFARI_MAC, "desktop", "Safari 17", "Mac OS 10.15.7"),
    ("curl/8.4.0", "desktop", "Unknown", "Unknown"),
])
def test_user_agent_classification(user_agent, device, browser, os_name):
    assert detect_device_type(user_agent) == device
    assert detect_browser(user_agent) == browser
    assert detect_os(user_agent) == os_name


def test_missing_user_agent():
    info = classify(None, "203.0.113.5", FakeGeo())
    assert info.device == "desktop"
    assert info.browser == "Unknown"
    assert info.os == "Unknown"


def test_geo_fields_come_from_lookup():
    geo = FakeGeo({"203.0.113.5": GeoData("DE", "Germany", "Berlin")})
    info = classify(CHROME_DESKTOP, "203.0.113.5", geo)
    assert (info.country, info.country_name, info.city) == ("DE", "Germany", "Berlin")


def test_unresolvable_address_gives_unknown_location():
    info = classify(CHROME_DESKTOP, "198.51.100.7", FakeGeo())
    assert info.country is None
    assert info.city is None


class TestGeoLookup:
    def test_without_database_every_address_is_unknown(self):
        geo = GeoLookup(None)
        assert not geo.enabled
        assert geo.lookup("8.8.8.8") == GeoData()

    def test_missing_database_file_is_not_fatal(self, tmp_path):
        geo = GeoLookup(str(tmp_path / "missing.mmdb"))
        assert not geo.enabled
        assert geo.lookup("8.8.8.8") == GeoData()

    @pytest.mark.parametrize("ip", ["127.0.0.1", "10.1.2.3", "172.20.0.1", "192.168.1.1", "::1", "unknown", None])
    def test_private_addresses(self, ip):
        assert is_private_ip(ip)

    def test_public_address(self):
        assert not is_private_ip("8.8.8.8")


class TestClientIp:
    def test_first_forwarded_entry_wins(self):
        assert get_client_ip("203.0.113.1, 10.0.0.1", "10.0.0.2") == "203.0.113.1"

    def test_falls_back_to_peer(self):
        assert get_client_ip(None, "198.51.100.4") == "198.51.100.4"
        assert get_client_ip("", "198.51.100.4") == "198.51.100.4"

    def test_unknown_when_nothing_available(self):
        assert get_client_ip(None, None) == "unknown"

    @pytest.mark.parametrize("forwarded_for", [
        "x" * 60,
        "not-an-ip, 203.0.113.1",
        "203.0.113.1:8080",
        "1" * 46,
    ])
    def test_non_ip_forwarded_entry_uses_peer(self, forwarded_for):
        assert get_client_ip(forwarded_for, "198.51.100.4") == "198.51.100.4"

    def test_non_ip_peer_is_unknown(self):
        assert get_client_ip(None, "testclient") == "unknown"
        assert get_client_ip("garbage", "y" * 80) == "unknown"

    def test_ipv6_is_normalized(self):
        assert get_client_ip("2001:DB8:0:0:0:0:0:1", None) == "2001:db8::1"


def test_request_context_truncates_headers():
    context = build_request_context("A" * 1000, "198.51.100.4", None, "https://ref.example/" + "x" * 1000, FakeGeo())
    assert context.client_ip == "198.51.100.4"
    assert len(context.user_agent) == 512
    assert len(context.referrer) == 512


class TestUrlValidation:
    @pytest.mark.parametrize("url", [
        "https://example.com/page",
        "http://example.org/a?b=c",
        "http://172.15.0.1/",
        "http://172.32.0.1/",
    ])
    def test_accepts_public_http_urls(self, url):
        assert is_valid_url(url) == (True, "")

    @pytest.mark.parametrize("url", [
        "",
        "example.com",
        "ftp://example.com/file",
        "javascript:alert(1)",
        "http://localhost:8000/",
        "http://192.168.0.10/admin",
        "http://172.20.1.1/",
        "http://172.31.255.254/",
        "http://[::1]:8000/",
        "http://127.0.0.1/",
        "http://169.254.169.254/latest/meta-data",
        "https://example.com/" + "a" * 2048,
    ])
    def test_rejects(self, url):
        is_valid, message = is_valid_url(url)
        assert not is_valid
        assert message
