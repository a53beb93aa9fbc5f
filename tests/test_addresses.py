"""
Tests for client address extraction and the /hello address resolution.
"""

import pytest
from unittest.mock import MagicMock

from ulink.core.addresses import (
    ClientAddress,
    parse_forwarded_for,
    rate_limit_key,
    resolve_address,
)


def make_request(peer="203.0.113.7", forwarded_for=None, client=True):
    request = MagicMock()
    request.client = MagicMock(host=peer) if client else None
    headers = {}
    if forwarded_for is not None:
        headers["x-forwarded-for"] = forwarded_for
    request.headers = headers
    return request


class TestResolveAddress:
    """Test resolve_address"""

    def test_empty_chain_returns_peer(self):
        assert resolve_address("203.0.113.7", ()) == "203.0.113.7"

    def test_peer_returned_verbatim(self):
        # no normalization of what the transport reported
        assert resolve_address(" ::ffff:10.0.0.1 ", []) == " ::ffff:10.0.0.1 "

    def test_chain_joined_with_single_spaces(self):
        assert resolve_address("10.0.0.1", ["a", "b", "c"]) == "a b c"

    def test_chain_order_preserved(self):
        chain = ["203.0.113.7", "198.51.100.2"]
        assert resolve_address("10.0.0.1", chain) == "203.0.113.7 198.51.100.2"

    def test_no_deduplication(self):
        assert resolve_address("10.0.0.1", ["1.1.1.1", "1.1.1.1"]) == "1.1.1.1 1.1.1.1"

    def test_no_validation(self):
        assert resolve_address("10.0.0.1", ["not-an-ip", "unknown"]) == "not-an-ip unknown"

    def test_idempotent(self):
        chain = ("203.0.113.7", "198.51.100.2")
        assert resolve_address("10.0.0.1", chain) == resolve_address("10.0.0.1", chain)


class TestParseForwardedFor:
    """Test X-Forwarded-For parsing"""

    @pytest.mark.parametrize("value", [None, "", "   ", ", ,"])
    def test_missing_or_blank_header_is_empty(self, value):
        assert parse_forwarded_for(value) == ()

    def test_entries_are_stripped(self):
        assert parse_forwarded_for("203.0.113.7,  198.51.100.2 ") == ("203.0.113.7", "198.51.100.2")

    def test_empty_entries_dropped(self):
        assert parse_forwarded_for("a,,b") == ("a", "b")


class TestClientAddress:
    """Test ClientAddress.from_request"""

    def test_peer_only(self):
        address = ClientAddress.from_request(make_request(peer="203.0.113.7"))
        assert address == ClientAddress(peer="203.0.113.7", forwarded=())

    def test_with_forwarded_header(self):
        address = ClientAddress.from_request(
            make_request(peer="10.0.0.1", forwarded_for="203.0.113.7, 198.51.100.2")
        )
        assert address.peer == "10.0.0.1"
        assert address.forwarded == ("203.0.113.7", "198.51.100.2")

    def test_missing_client_gives_empty_peer(self):
        address = ClientAddress.from_request(make_request(client=False))
        assert address.peer == ""


class TestRateLimitKey:
    """Test the rate limiter key choice"""

    def test_uses_peer_without_proxy(self):
        assert rate_limit_key(ClientAddress("203.0.113.7")) == "203.0.113.7"

    def test_uses_first_forwarded_hop_behind_proxy(self):
        address = ClientAddress("10.0.0.1", ("203.0.113.7", "198.51.100.2"))
        assert rate_limit_key(address) == "203.0.113.7"
