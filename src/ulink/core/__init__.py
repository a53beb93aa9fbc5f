# Core request classification and configuration
from .config import Config, setup_logging
from .addresses import ClientAddress, parse_forwarded_for, resolve_address, rate_limit_key
from .access import AccessPolicy, AuthorizationDenied, Decision

__all__ = [
    # Config
    "Config",
    "setup_logging",
    # Addresses
    "ClientAddress",
    "parse_forwarded_for",
    "resolve_address",
    "rate_limit_key",
    # Access
    "AccessPolicy",
    "AuthorizationDenied",
    "Decision",
]
