"""Exception taxonomy for trust store and reachability operations."""

from typing import Optional, Sequence


class TrustAssistantError(Exception):
    """Base exception for all trust-assistant errors."""

    pass


class CommandError(TrustAssistantError):
    """An OS utility could not be run to completion."""

    def __init__(self, message: str, command: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.command = list(command) if command else []


class CommandSpawnError(CommandError):
    """The process could not be started (missing binary, permissions, ...)."""

    pass


class CommandTimeoutError(CommandError):
    """The process did not finish within its time bound and was killed."""

    pass


class CertificateParseError(TrustAssistantError):
    """Certificate content is neither valid PEM nor valid DER."""

    pass


class ConfigurationError(TrustAssistantError):
    """Malformed reachability request or settings value."""

    pass


class InvalidTransitionError(TrustAssistantError):
    """An installer tried to move between two states that are not connected."""

    def __init__(self, current, target):
        super().__init__(f"Invalid install state transition: {current.value} -> {target.value}")
        self.current = current
        self.target = target
