"""Tests for client IP resolution and the proxy trust boundary."""

import ipaddress

import pytest
from starlette.requests import Request

from loginguard.limiter.client_ip import (
    INVALID_IP,
    client_ip_from_request,
    is_trusted_proxy,
    is_valid_ip,
    normalize_ip,
    resolve_client_ip,
)


def make_request(client_host: str | None, headers=None) -> Request:
    """Build a request; ``headers`` is a dict or a list of pairs (repeats allowed)."""
    pairs = headers.items() if isinstance(headers, dict) else (headers or [])
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/auth/login",
        "headers": [
            (k.lower().encode("latin-1"), v.encode("latin-1"))
            for k, v in pairs
        ],
        "client": (client_host, 50000) if client_host else None,
    }
    return Request(scope)


class TestProxyTrust:
    """Forwarded headers only count when the peer is a trusted proxy."""

    def test_forwarded_header_ignored_without_trusted_proxies(self):
        ip = resolve_client_ip("10.0.0.1", {"X-Forwarded-For": "203.0.113.9"})
        assert ip == "10.0.0.1"

    def test_forwarded_header_ignored_from_untrusted_peer(self):
        ip = resolve_client_ip(
            "10.0.0.1",
            {"X-Forwarded-For": "203.0.113.9"},
            trusted_proxies=["10.0.0.254"],
        )
        assert ip == "10.0.0.1"

    def test_trusted_proxy_first_forwarded_address_used(self):
        ip = resolve_client_ip(
            "10.0.0.254",
            {"X-Forwarded-For": "203.0.113.9, 198.51.100.2, 10.0.0.254"},
            trusted_proxies=["10.0.0.254"],
        )
        assert ip == "203.0.113.9"

    def test_client_ip_header_used_when_forwarded_for_missing(self):
        ip = resolve_client_ip(
            "10.0.0.254",
            {"Client-IP": "198.51.100.7"},
            trusted_proxies=["10.0.0.254"],
        )
        assert ip == "198.51.100.7"

    def test_forwarded_for_wins_over_client_ip(self):
        ip = resolve_client_ip(
            "10.0.0.254",
            {"client-ip": "198.51.100.7", "x-forwarded-for": "203.0.113.9"},
            trusted_proxies=["10.0.0.254"],
        )
        assert ip == "203.0.113.9"

    def test_cidr_trusted_proxy(self):
        ip = resolve_client_ip(
            "10.20.30.40",
            {"X-Forwarded-For": "203.0.113.9"},
            trusted_proxies=["10.0.0.0/8"],
        )
        assert ip == "203.0.113.9"

    def test_invalid_proxy_entries_are_skipped(self):
        assert is_trusted_proxy("10.0.0.254", ["not-an-ip", "10.0.0.254"]) is True
        assert is_trusted_proxy("10.0.0.1", ["not-an-ip"]) is False

    def test_invalid_peer_is_never_trusted(self):
        assert is_trusted_proxy("testclient", ["0.0.0.0/0"]) is False


class TestFallbacks:
    """Unusable values degrade to the peer address, then to the sentinel."""

    def test_invalid_forwarded_value_falls_back_to_peer(self):
        ip = resolve_client_ip(
            "10.0.0.254",
            {"X-Forwarded-For": "garbage, 203.0.113.9"},
            trusted_proxies=["10.0.0.254"],
        )
        assert ip == "10.0.0.254"

    def test_empty_forwarded_value_falls_back_to_peer(self):
        ip = resolve_client_ip(
            "10.0.0.254", {"X-Forwarded-For": "  "}, trusted_proxies=["10.0.0.254"]
        )
        assert ip == "10.0.0.254"

    @pytest.mark.parametrize("remote_addr", [None, "", "testclient", "999.1.1.1"])
    def test_unusable_peer_returns_sentinel(self, remote_addr):
        assert resolve_client_ip(remote_addr, {}) == INVALID_IP

    def test_no_headers_at_all(self):
        assert resolve_client_ip("192.0.2.1") == "192.0.2.1"


class TestNormalization:
    def test_ipv6_is_compressed_and_lowercased(self):
        assert normalize_ip("2001:0DB8:0000:0000:0000:0000:0000:0001") == "2001:db8::1"

    def test_equivalent_ipv6_forms_share_a_key(self):
        assert resolve_client_ip("2001:DB8::1") == resolve_client_ip("2001:0db8::0001")

    def test_ipv4_surrounding_whitespace(self):
        assert normalize_ip(" 192.0.2.1 ") == "192.0.2.1"

    def test_ipv4_mapped_collapses_to_ipv4(self):
        assert normalize_ip("::ffff:10.0.0.254") == "10.0.0.254"
        assert resolve_client_ip("::ffff:192.0.2.1") == "192.0.2.1"

    def test_is_valid_ip(self):
        assert is_valid_ip("::1")
        assert not is_valid_ip("localhost")
        assert not is_valid_ip(None)


class TestRequestAdapter:
    def test_uses_peer_address(self):
        request = make_request("192.0.2.10", {"X-Forwarded-For": "203.0.113.9"})
        assert client_ip_from_request(request) == "192.0.2.10"

    def test_trusted_proxy_request(self):
        request = make_request("10.0.0.254", {"X-Forwarded-For": "203.0.113.9"})
        assert client_ip_from_request(request, ["10.0.0.254"]) == "203.0.113.9"

    def test_missing_client(self):
        request = make_request(None)
        assert client_ip_from_request(request) == INVALID_IP

    def test_repeated_forwarded_lines_use_first(self):
        request = make_request(
            "10.0.0.254",
            [("X-Forwarded-For", "203.0.113.1"), ("X-Forwarded-For", "198.51.100.7")],
        )
        assert client_ip_from_request(request, ["10.0.0.254"]) == "203.0.113.1"

    def test_repeated_lines_with_lists_keep_order(self):
        request = make_request(
            "10.0.0.254",
            [("X-Forwarded-For", "203.0.113.1, 10.0.0.3"), ("X-Forwarded-For", "198.51.100.7")],
        )
        assert client_ip_from_request(request, ["10.0.0.254"]) == "203.0.113.1"

    def test_ipv4_mapped_peer_matches_ipv4_proxy(self):
        request = make_request("::ffff:10.0.0.254", {"X-Forwarded-For": "203.0.113.9"})
        assert client_ip_from_request(request, ["10.0.0.254"]) == "203.0.113.9"

    def test_parsed_networks_are_accepted(self):
        request = make_request("10.1.2.3", {"X-Forwarded-For": "203.0.113.9"})
        trusted = [ipaddress.ip_network("10.0.0.0/8")]
        assert client_ip_from_request(request, trusted) == "203.0.113.9"
