"""Shared trust manager contract, install state machine and temp file handling."""

import logging
import os
import re
import tempfile
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

from trust_assistant.config import Settings
from trust_assistant.exceptions import CommandError, InvalidTransitionError
from trust_assistant.models import CertificateInfo, InstallResult, InstallState
from trust_assistant.platforms import Platform

logger = logging.getLogger(__name__)

TEMP_FILE_MODE = 0o644
TEMP_FILE_PREFIX = "install_cert_"

MSG_USER_CANCELLED = "The user cancelled the privilege elevation request"
MSG_ELEVATION_FAILED = "Privilege elevation failed: {error}"
MSG_TEMP_FILE_FAILED = "Failed to create temporary certificate file: {error}"

_HEX_FINGERPRINT = re.compile(r"^[0-9a-f]{40}$")

_TRANSITIONS: Dict[InstallState, FrozenSet[InstallState]] = {
    InstallState.NOT_STARTED: frozenset({InstallState.TEMP_FILE_WRITTEN, InstallState.FAILED}),
    InstallState.TEMP_FILE_WRITTEN: frozenset({InstallState.ELEVATION_REQUESTED, InstallState.FAILED}),
    InstallState.ELEVATION_REQUESTED: frozenset({
        InstallState.SUCCESS,
        InstallState.USER_CANCELLED,
        InstallState.ALTERNATE_STRATEGY,
        InstallState.FAILED,
    }),
    InstallState.ALTERNATE_STRATEGY: frozenset({
        InstallState.SUCCESS,
        InstallState.USER_CANCELLED,
        InstallState.FAILED,
    }),
    InstallState.SUCCESS: frozenset(),
    InstallState.USER_CANCELLED: frozenset(),
    InstallState.FAILED: frozenset(),
}


def normalize_fingerprint(fingerprint: str) -> str:
    """Lowercase hex without colons or whitespace."""
    return re.sub(r"[:\s]", "", fingerprint).lower()


def is_valid_fingerprint(fingerprint: str) -> bool:
    return bool(_HEX_FINGERPRINT.match(normalize_fingerprint(fingerprint)))


def contains_phrase(text: str, phrases: Tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(phrase.lower() in lowered for phrase in phrases)


class InstallAttempt:
    """
    Tracks one installation through the install state machine.

    NOT_STARTED -> TEMP_FILE_WRITTEN -> ELEVATION_REQUESTED ->
    {SUCCESS, USER_CANCELLED, ALTERNATE_STRATEGY, FAILED};
    ALTERNATE_STRATEGY -> {SUCCESS, USER_CANCELLED, FAILED}.
    """

    def __init__(self, platform: Platform):
        self.platform = platform
        self.state = InstallState.NOT_STARTED
        self.history: List[InstallState] = [self.state]

    def transition(self, target: InstallState) -> None:
        """
        Raises:
            InvalidTransitionError: If target is not reachable from the current state
        """
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state, target)
        logger.debug(f"[{self.platform.value}] install state {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)

    def succeed(self, message: str) -> InstallResult:
        self.transition(InstallState.SUCCESS)
        return InstallResult.succeeded(message, states=self.history)

    def cancel(self, error: str = MSG_USER_CANCELLED) -> InstallResult:
        self.transition(InstallState.USER_CANCELLED)
        return InstallResult.failed(error, state=InstallState.USER_CANCELLED, states=self.history)

    def fail(self, error: str) -> InstallResult:
        self.transition(InstallState.FAILED)
        return InstallResult.failed(error, states=self.history)

    def finish(self, state: InstallState, message: str) -> InstallResult:
        """Close the attempt in a terminal state picked by a classifier."""
        if state == InstallState.SUCCESS:
            return self.succeed(message)
        if state == InstallState.USER_CANCELLED:
            return self.cancel(message)
        return self.fail(message)


def _unique_temp_prefix() -> str:
    return f"{TEMP_FILE_PREFIX}{time.time_ns()}_"


@contextmanager
def temporary_certificate(
    content: str,
    temp_dir: Optional[Path] = None,
    mode: int = TEMP_FILE_MODE,
) -> Iterator[Path]:
    """
    Write certificate content to a uniquely named temp file for the block.

    The file is removed when the block exits, whatever the exit path.
    World-readable mode lets elevated helpers running as another user read it.

    Raises:
        OSError: If the file cannot be created or written
    """
    fd, name = tempfile.mkstemp(prefix=_unique_temp_prefix(), suffix=".pem", dir=temp_dir)
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(path, mode)
        logger.debug(f"Wrote temporary certificate {path} ({path.stat().st_size} bytes)")
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Error cleaning up temp file {path}: {e}")


class TrustManager(ABC):
    """Probe and installer for one platform's trust store."""

    platform: Platform

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    async def check_installed(self, content: str, info: CertificateInfo) -> bool:
        """
        Check whether the certificate is trusted by the OS. Never raises.

        Failing to prove trust is reported as "not installed", since the
        caller's next step (offering installation) is safe either way.
        """
        if not is_valid_fingerprint(info.fingerprint):
            logger.info(f"No usable fingerprint for {info.name}, reporting as not installed")
            return False
        try:
            installed = await self._probe(content, info)
        except CommandError as e:
            logger.warning(f"Trust check for {info.name} failed, defaulting to not installed: {e}")
            return False
        logger.info(f"Certificate {info.name}: {'TRUSTED' if installed else 'NOT TRUSTED'}")
        return installed

    async def install(self, content: str) -> InstallResult:
        """Install the certificate into the OS trust store. Never raises."""
        attempt = InstallAttempt(self.platform)
        try:
            with temporary_certificate(content, self.settings.temp_dir) as path:
                attempt.transition(InstallState.TEMP_FILE_WRITTEN)
                try:
                    result = await self._install_file(attempt, path, content)
                except CommandError as e:
                    logger.error(f"Elevated command could not be run: {e}")
                    result = attempt.fail(MSG_ELEVATION_FAILED.format(error=e))
                except OSError as e:
                    logger.error(f"Temporary certificate file became unusable: {e}")
                    result = attempt.fail(MSG_TEMP_FILE_FAILED.format(error=e))
        except OSError as e:
            logger.error(f"Could not write temporary certificate file: {e}")
            return attempt.fail(MSG_TEMP_FILE_FAILED.format(error=e))
        logger.info(f"Installation result: {'SUCCESS' if result.success else result.state.value.upper()}")
        return result

    @abstractmethod
    async def _probe(self, content: str, info: CertificateInfo) -> bool:
        """Query the trust store. May raise CommandError."""

    @abstractmethod
    async def _install_file(self, attempt: InstallAttempt, path: Path, content: str) -> InstallResult:
        """Drive the attempt from TEMP_FILE_WRITTEN to a terminal state. May raise CommandError."""
