"""
Service configuration loaded from environment variables (and .env).
"""
import os
import logging
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

PACKAGE_STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

DEFAULT_TRUSTED_ADDRESSES = ["127.0.0.1", "localhost"]


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be true or false, got {value!r}. Configure this in your .env file.")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be a valid integer. Configure this in your .env file.")


class Config:
    """Configuration for one running instance of the edge service.

    Instances are built explicitly and handed to ``create_app``; nothing reads
    the environment after construction.
    """

    def __init__(
        self,
        listen_host: str = "0.0.0.0",
        listen_port: int = 3000,
        log_level: str = "INFO",
        cors_origins: Optional[List[str]] = None,
        rate_limit: str = "1/second",
        trusted_addresses: Optional[List[str]] = None,
        monitor_allow_loopback: bool = False,
        monitor_title: str = "µLink Metrics",
        monitor_refresh_seconds: int = 3,
        monitor_font_url: str = "/roboto.css",
        monitor_chartjs_url: str = "/Chart.min.js",
        monitor_api_only: bool = False,
        static_dir: Optional[Path] = None,
        favicon_file: Optional[Path] = None,
    ):
        if not 0 < listen_port < 65536:
            raise ValueError(f"LISTEN_PORT must be between 1 and 65535, got {listen_port}")
        if monitor_refresh_seconds <= 0:
            raise ValueError("MONITOR_REFRESH_SECONDS must be a positive integer")

        self.listen_host = listen_host
        self.listen_port = listen_port
        self.log_level = log_level.upper()
        self.cors_origins = list(cors_origins) if cors_origins is not None else ["*"]
        self.rate_limit = rate_limit
        self.trusted_addresses = (
            list(trusted_addresses) if trusted_addresses is not None else list(DEFAULT_TRUSTED_ADDRESSES)
        )
        self.monitor_allow_loopback = monitor_allow_loopback
        self.monitor_title = monitor_title
        self.monitor_refresh_seconds = monitor_refresh_seconds
        self.monitor_font_url = monitor_font_url
        self.monitor_chartjs_url = monitor_chartjs_url
        self.monitor_api_only = monitor_api_only
        self.static_dir = Path(static_dir) if static_dir else PACKAGE_STATIC_DIR
        self.favicon_file = Path(favicon_file) if favicon_file else None

    @classmethod
    def from_env(cls) -> "Config":
        """Build a Config from the process environment, loading .env first."""
        load_dotenv()

        return cls(
            listen_host=os.getenv("LISTEN_HOST", "0.0.0.0"),
            listen_port=_parse_int("LISTEN_PORT", os.getenv("LISTEN_PORT", "3000")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            cors_origins=_split_list(os.getenv("CORS_ORIGINS", "*")),
            rate_limit=os.getenv("RATE_LIMIT", "1/second"),
            trusted_addresses=_split_list(
                os.getenv("TRUSTED_ADDRESSES", ",".join(DEFAULT_TRUSTED_ADDRESSES))
            ),
            monitor_allow_loopback=_parse_bool(
                "MONITOR_ALLOW_LOOPBACK", os.getenv("MONITOR_ALLOW_LOOPBACK", "false")
            ),
            monitor_title=os.getenv("MONITOR_TITLE", "µLink Metrics"),
            monitor_refresh_seconds=_parse_int(
                "MONITOR_REFRESH_SECONDS", os.getenv("MONITOR_REFRESH_SECONDS", "3")
            ),
            monitor_font_url=os.getenv("MONITOR_FONT_URL", "/roboto.css"),
            monitor_chartjs_url=os.getenv("MONITOR_CHARTJS_URL", "/Chart.min.js"),
            monitor_api_only=_parse_bool("MONITOR_API_ONLY", os.getenv("MONITOR_API_ONLY", "false")),
            static_dir=os.getenv("STATIC_DIR") or None,
            favicon_file=os.getenv("FAVICON_FILE") or None,
        )


def setup_logging(config: Config):
    """Configure logging based on the configured log level."""
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger(__name__)
