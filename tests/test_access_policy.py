"""
Tests for the local-access policy guarding /api/monitor.

The default allow-list reproduces the historic behaviour exactly:
"127.0.0.1" and the literal "localhost" only, with "::1" rejected.
"""

import pytest

from ulink.core.access import AccessPolicy, AuthorizationDenied, Decision
from ulink.core.config import Config


@pytest.fixture
def default_policy():
    return AccessPolicy.from_config(Config())


class TestDefaultPolicy:
    """Test the default literal allow-list"""

    def test_ipv4_loopback_allowed(self, default_policy):
        assert default_policy.evaluate("127.0.0.1") == Decision.allow()

    def test_localhost_literal_allowed(self, default_policy):
        assert default_policy.evaluate("localhost").allowed is True

    def test_private_address_rejected(self, default_policy):
        decision = default_policy.evaluate("10.0.0.5")
        assert decision.allowed is False
        assert decision.reason == "not_local"

    def test_ipv6_loopback_rejected(self, default_policy):
        # known gap of the literal allow-list, kept unless allow_loopback is set
        assert default_policy.evaluate("::1").allowed is False

    def test_other_127_addresses_rejected(self, default_policy):
        assert default_policy.evaluate("127.0.0.2").allowed is False

    @pytest.mark.parametrize("peer", ["", "LOCALHOST", " 127.0.0.1", "garbage", "8.8.8.8"])
    def test_everything_else_rejected(self, default_policy, peer):
        assert default_policy.evaluate(peer).allowed is False

    def test_idempotent(self, default_policy):
        assert default_policy.evaluate("10.0.0.5") == default_policy.evaluate("10.0.0.5")
        assert default_policy.evaluate("127.0.0.1") == default_policy.evaluate("127.0.0.1")


class TestAuthorize:
    """Test authorize() raising AuthorizationDenied"""

    def test_allowed_peer_passes(self, default_policy):
        assert default_policy.authorize("127.0.0.1") is None

    def test_rejected_peer_raises(self, default_policy):
        with pytest.raises(AuthorizationDenied) as exc_info:
            default_policy.authorize("8.8.8.8")
        assert exc_info.value.peer == "8.8.8.8"
        assert exc_info.value.reason == "not_local"


class TestLoopbackPolicy:
    """Test allow_loopback, which closes the IPv6 and 127/8 gaps"""

    @pytest.fixture
    def policy(self):
        return AccessPolicy(["127.0.0.1", "localhost"], allow_loopback=True)

    @pytest.mark.parametrize("peer", ["127.0.0.1", "127.8.9.10", "::1", "::ffff:127.0.0.1", "localhost"])
    def test_loopback_allowed(self, policy, peer):
        assert policy.evaluate(peer).allowed is True

    @pytest.mark.parametrize("peer", ["10.0.0.5", "::2", "fe80::1", "not-an-ip"])
    def test_non_loopback_rejected(self, policy, peer):
        assert policy.evaluate(peer).allowed is False


class TestNetworkEntries:
    """Test CIDR entries in the trusted list"""

    def test_address_inside_network_allowed(self):
        policy = AccessPolicy(["10.0.0.0/8"])
        assert policy.evaluate("10.1.2.3").allowed is True
        assert policy.evaluate("11.0.0.1").allowed is False

    def test_ipv6_network(self):
        policy = AccessPolicy(["fd00::/8"])
        assert policy.evaluate("fd12::1").allowed is True
        assert policy.evaluate("10.0.0.1").allowed is False

    def test_invalid_network_rejected_at_construction(self):
        with pytest.raises(ValueError, match="TRUSTED_ADDRESSES"):
            AccessPolicy(["10.0.0.0/99"])

    def test_empty_policy_rejects_everything(self):
        policy = AccessPolicy([])
        assert policy.evaluate("127.0.0.1").allowed is False
