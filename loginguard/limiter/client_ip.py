"""
Client IP resolution for rate limiting.

Forwarded headers are only honored when the direct connection comes from
a configured trusted proxy. Anyone else could put an arbitrary address in
X-Forwarded-For and walk around the limiter.
"""

import ipaddress
from collections.abc import Iterable, Mapping
from typing import Union

from starlette.requests import Request

from loginguard.core.logging import get_logger

logger = get_logger(__name__)

INVALID_IP = "0.0.0.0"

# Checked in order; the first non-empty one wins.
FORWARDED_HEADERS = ("x-forwarded-for", "client-ip")

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network
ProxyEntry = Union[str, IPNetwork]


def normalize_ip(value: str | None) -> str | None:
    """
    Return the canonical lowercase form of an IP address, or None.

    IPv6 is compressed so ``2001:0DB8::1`` and ``2001:db8::1`` share a key,
    and IPv4-mapped IPv6 (``::ffff:10.0.0.1``) collapses to plain IPv4.
    """
    if not value:
        return None
    try:
        address = ipaddress.ip_address(value.strip())
    except ValueError:
        return None
    if address.version == 6 and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return address.compressed.lower()


def is_valid_ip(value: str | None) -> bool:
    return normalize_ip(value) is not None


def parse_trusted_proxies(entries: Iterable[ProxyEntry]) -> tuple[IPNetwork, ...]:
    """
    Parse proxy entries (single addresses or CIDR ranges), skipping junk.

    Already-parsed networks pass through untouched.
    """
    networks: list[IPNetwork] = []
    for entry in entries:
        if isinstance(entry, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
            networks.append(entry)
            continue
        try:
            networks.append(ipaddress.ip_network(entry.strip(), strict=False))
        except ValueError:
            logger.warning("Ignoring invalid trusted proxy entry", data={"entry": entry})
    return tuple(networks)


def is_trusted_proxy(remote_addr: str | None, trusted_proxies: Iterable[ProxyEntry]) -> bool:
    normalized = normalize_ip(remote_addr)
    if normalized is None:
        return False
    address = ipaddress.ip_address(normalized)
    return any(address in network for network in parse_trusted_proxies(trusted_proxies))


def _header_values(headers: Mapping[str, str], name: str) -> list[str]:
    """All values sent for ``name``, in the order they arrived."""
    getlist = getattr(headers, "getlist", None)
    if getlist is not None:
        return list(getlist(name))
    return [v for k, v in headers.items() if str(k).lower() == name]


def _first_forwarded(headers: Mapping[str, str]) -> str:
    for name in FORWARDED_HEADERS:
        values = [v.strip() for v in _header_values(headers, name) if v and v.strip()]
        if values:
            # Repeated header lines form one list; the left-most entry is the client.
            return ",".join(values).split(",")[0].strip()
    return ""


def resolve_client_ip(
    remote_addr: str | None,
    headers: Mapping[str, str] | None = None,
    trusted_proxies: Iterable[ProxyEntry] = (),
) -> str:
    """
    Resolve the IP address to use as the rate-limit identity.

    Args:
        remote_addr: Address of the direct TCP peer.
        headers: Request headers (any mapping; lookup is case-insensitive).
        trusted_proxies: Addresses, CIDR ranges or parsed networks allowed
            to forward.

    Returns:
        Normalized IP string, or ``INVALID_IP`` when nothing usable exists.
        Never raises.
    """
    trusted = parse_trusted_proxies(trusted_proxies)
    candidate = ""
    if trusted and headers and is_trusted_proxy(remote_addr, trusted):
        candidate = _first_forwarded(headers)

    resolved = normalize_ip(candidate) or normalize_ip(remote_addr)
    if resolved is None:
        logger.debug(
            "Could not resolve client IP",
            data={"remote_addr": remote_addr, "forwarded": candidate},
        )
        return INVALID_IP
    return resolved


def client_ip_from_request(
    request: Request, trusted_proxies: Iterable[ProxyEntry] = ()
) -> str:
    """Resolve the client IP for a Starlette/FastAPI request."""
    remote_addr = request.client.host if request.client else None
    return resolve_client_ip(remote_addr, request.headers, trusted_proxies)
