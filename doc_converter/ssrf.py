"""Server-side request forgery guard.

A URL is only fetched when every address its hostname resolves to is a
public, routable address. A single private, loopback or link-local answer
vetoes the whole URL.
"""

import ipaddress
import socket
from typing import Callable
from urllib.parse import urlparse

from .errors import URLValidationError

Resolver = Callable[..., list]

_LINK_LOCAL_MULTICAST = (
    ipaddress.ip_network("224.0.0.0/24"),
    ipaddress.ip_network("ff02::/16"),
)


def resolve_host(hostname: str, resolver: Resolver = socket.getaddrinfo) -> list[str]:
    """Resolve a hostname to its unique IP address strings.

    Args:
        hostname: Host to resolve
        resolver: ``socket.getaddrinfo``-compatible callable

    Returns:
        Resolved addresses in resolver order

    Raises:
        OSError: If resolution fails
    """
    addresses = []
    for _family, _type, _proto, _canonname, sockaddr in resolver(hostname, None):
        address = str(sockaddr[0])
        if address not in addresses:
            addresses.append(address)
    return addresses


def is_public_address(address: str) -> bool:
    """Return True if the address is routable on the public internet."""
    # Strip an IPv6 zone index such as "fe80::1%eth0"
    ip = ipaddress.ip_address(address.split("%", 1)[0])
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    if (
        ip.is_loopback
        or ip.is_link_local
        or ip.is_private
        or ip.is_unspecified
        or ip.is_reserved
    ):
        return False

    return not any(ip in network for network in _LINK_LOCAL_MULTICAST if ip.version == network.version)


def is_public_url(url: str, resolver: Resolver = socket.getaddrinfo) -> bool:
    """Check whether a URL's host resolves exclusively to public addresses.

    Args:
        url: Absolute http(s) URL
        resolver: ``socket.getaddrinfo``-compatible callable

    Returns:
        False if any resolved address is non-public, True otherwise

    Raises:
        URLValidationError: If the URL is malformed or the host does not resolve
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise URLValidationError(url, f"URL validation failed: {e}") from e

    if parsed.scheme not in ("http", "https"):
        raise URLValidationError(
            url, f"URL validation failed: unsupported scheme '{parsed.scheme}'"
        )
    if not hostname:
        raise URLValidationError(url, "URL validation failed: missing hostname")

    try:
        addresses = resolve_host(hostname, resolver)
    except (OSError, UnicodeError) as e:
        raise URLValidationError(
            url, f"URL validation failed: cannot resolve {hostname}: {e}"
        ) from e

    if not addresses:
        raise URLValidationError(
            url, f"URL validation failed: {hostname} resolved to no addresses"
        )

    for address in addresses:
        try:
            if not is_public_address(address):
                return False
        except ValueError:
            return False

    return True
