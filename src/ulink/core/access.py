"""
Local-access policy for restricted operational endpoints.

Only the direct peer address is consulted. Forwarded headers are ignored
because clients control them.
"""
import ipaddress
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Tuple


class AuthorizationDenied(Exception):
    """Raised when a peer is not allowed to reach a local-only endpoint."""

    def __init__(self, peer: str, reason: str = "not_local"):
        super().__init__(f"Access denied for {peer!r}: {reason}")
        self.peer = peer
        self.reason = reason


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def reject(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)


def _parse_ip(value: str):
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        return None


class AccessPolicy:
    """
    Decides whether a peer address counts as local.

    Entries in ``trusted`` are compared as exact strings, except entries
    containing "/" which are treated as CIDR networks. With the default
    entries ("127.0.0.1" and "localhost") the literal "localhost" never
    matches a numeric peer and "::1" is rejected; set ``allow_loopback``
    to accept every loopback address instead.
    """

    def __init__(self, trusted: Iterable[str], allow_loopback: bool = False):
        literals = set()
        networks = []
        for entry in trusted:
            if "/" in entry:
                try:
                    networks.append(ipaddress.ip_network(entry, strict=False))
                except ValueError:
                    raise ValueError(f"TRUSTED_ADDRESSES contains an invalid network: {entry!r}")
            else:
                literals.add(entry)

        self.literals: FrozenSet[str] = frozenset(literals)
        self.networks: Tuple = tuple(networks)
        self.allow_loopback = allow_loopback

    @classmethod
    def from_config(cls, config) -> "AccessPolicy":
        return cls(config.trusted_addresses, allow_loopback=config.monitor_allow_loopback)

    def evaluate(self, peer: str) -> Decision:
        """Decide on a peer address. Total: every string yields one Decision."""
        if peer in self.literals:
            return Decision.allow()

        if self.networks or self.allow_loopback:
            ip = _parse_ip(peer)
            if ip is not None:
                if self.allow_loopback and _is_loopback(ip):
                    return Decision.allow()
                if any(ip.version == net.version and ip in net for net in self.networks):
                    return Decision.allow()

        return Decision.reject("not_local")

    def authorize(self, peer: str) -> None:
        """Raise AuthorizationDenied unless the peer is allowed."""
        decision = self.evaluate(peer)
        if not decision.allowed:
            raise AuthorizationDenied(peer, decision.reason)


def _is_loopback(ip) -> bool:
    if ip.is_loopback:
        return True
    # IPv4-mapped loopback, e.g. ::ffff:127.0.0.1
    mapped = getattr(ip, "ipv4_mapped", None)
    return mapped is not None and mapped.is_loopback
