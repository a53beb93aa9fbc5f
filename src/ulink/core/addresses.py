"""
Client address extraction and resolution.

The forwarded chain comes straight from the X-Forwarded-For header, which any
client can set when no trusted reverse proxy rewrites it. Treat it as
informational only; authorization decisions use the peer address.
"""
from dataclasses import dataclass
from typing import Sequence, Tuple

from starlette.requests import Request

FORWARDED_FOR_HEADER = "x-forwarded-for"


@dataclass(frozen=True)
class ClientAddress:
    """The addresses observed for one request."""
    peer: str
    forwarded: Tuple[str, ...] = ()

    @classmethod
    def from_request(cls, request: Request) -> "ClientAddress":
        peer = request.client.host if request.client else ""
        return cls(peer=peer, forwarded=parse_forwarded_for(request.headers.get(FORWARDED_FOR_HEADER)))


def parse_forwarded_for(value) -> Tuple[str, ...]:
    """Split an X-Forwarded-For value into its entries, in header order."""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def resolve_address(peer: str, forwarded: Sequence[str]) -> str:
    """
    Resolve the address string echoed back to the caller.

    Args:
        peer: Direct connection peer, exactly as the transport reported it
        forwarded: Forwarded-address chain, possibly empty

    Returns:
        The peer when the chain is empty, otherwise the chain joined by single spaces
    """
    if not forwarded:
        return peer
    return " ".join(forwarded)


def rate_limit_key(address: ClientAddress) -> str:
    # first hop of the chain when behind a proxy, otherwise the real peer
    if address.forwarded:
        return address.forwarded[0]
    return address.peer
