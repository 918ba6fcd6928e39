# config.py
# Runtime settings, read from TRUST_ASSISTANT_* environment variables

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

from trust_assistant.exceptions import ConfigurationError

ENV_PREFIX = "TRUST_ASSISTANT_"

DEFAULT_HTTP_TIMEOUT = 3.0
DEFAULT_PING_TIMEOUT = 5.0
DEFAULT_USER_AGENT = "TrustAssistant/1.0"
SYSTEM_KEYCHAIN = "/Library/Keychains/System.keychain"
DOMAINS_FILENAME = "domains.json"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_float(name: str, value: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {value!r}")
    if parsed <= 0:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be positive, got {value!r}")
    return parsed


@dataclass
class Settings:
    """Application settings"""

    cert_dir: Path = field(default_factory=lambda: Path("cert"))
    config_dir: Path = field(default_factory=lambda: Path("config"))

    # Reachability
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    ping_timeout: float = DEFAULT_PING_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT

    # Trust stores
    macos_keychains: Tuple[str, ...] = (SYSTEM_KEYCHAIN,)
    linux_scan_bundle: bool = False
    temp_dir: Optional[Path] = None  # None = system temp dir

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from the environment.

        Raises:
            ConfigurationError: If a numeric variable is malformed
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        settings = cls()
        if get("CERT_DIR"):
            settings.cert_dir = Path(get("CERT_DIR"))
        if get("CONFIG_DIR"):
            settings.config_dir = Path(get("CONFIG_DIR"))
        if get("HTTP_TIMEOUT"):
            settings.http_timeout = _parse_float("HTTP_TIMEOUT", get("HTTP_TIMEOUT"))
        if get("PING_TIMEOUT"):
            settings.ping_timeout = _parse_float("PING_TIMEOUT", get("PING_TIMEOUT"))
        if get("USER_AGENT"):
            settings.user_agent = get("USER_AGENT")
        if get("MACOS_KEYCHAINS"):
            keychains = tuple(k for k in get("MACOS_KEYCHAINS").split(os.pathsep) if k)
            if keychains:
                settings.macos_keychains = keychains
        if get("LINUX_SCAN_BUNDLE"):
            settings.linux_scan_bundle = _parse_bool(get("LINUX_SCAN_BUNDLE"))
        if get("TEMP_DIR"):
            settings.temp_dir = Path(get("TEMP_DIR"))
        if get("LOG_LEVEL"):
            settings.log_level = get("LOG_LEVEL").upper()
        return settings
