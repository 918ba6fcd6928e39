"""Windows trust store: certutil for listing, certutil via UAC for installation."""

import logging
import re
from pathlib import Path
from typing import List, Optional

from trust_assistant.models import CertificateInfo, InstallResult, InstallState
from trust_assistant.platforms import Platform
from trust_assistant.process import CommandResult, run_command
from trust_assistant.trust.base import (
    MSG_USER_CANCELLED,
    InstallAttempt,
    TrustManager,
    contains_phrase,
    normalize_fingerprint,
)

logger = logging.getLogger(__name__)

ROOT_STORE = "Root"

CANCELLATION_PHRASES = (
    "cancelled",
    "canceled",
    "用户取消",
)

MSG_INSTALLED = "Certificate imported into the trusted root store (elevated)"
MSG_FAILED = "Certificate import failed (certutil exit code: {code})"

_EXIT_CODE_PATTERN = re.compile(r"ExitCode\s*:\s*(-?\d+)", re.IGNORECASE)


def list_store_command(store: str = ROOT_STORE) -> List[str]:
    return ["certutil", "-store", store]


def _ps_quote(value: str) -> str:
    """Single-quoted PowerShell literal."""
    return "'" + value.replace("'", "''") + "'"


def elevated_add_command(cert_path: Path, store: str = ROOT_STORE) -> List[str]:
    """
    PowerShell invocation that runs ``certutil -addstore -f`` through UAC.

    ``-PassThru`` lets the script print the inner certutil exit code, since the
    wrapper's own exit code only says whether elevation happened.
    """
    # The path is wrapped in double quotes inside the literal so certutil sees one argument
    quoted_path = _ps_quote(f'"{cert_path}"')
    script = (
        f'$process = Start-Process -FilePath "certutil.exe" '
        f'-ArgumentList "-addstore", "-f", {_ps_quote(store)}, {quoted_path} '
        f"-Verb RunAs -Wait -PassThru\n"
        f'Write-Output "ExitCode: $($process.ExitCode)"'
    )
    return [
        "powershell.exe",
        "-ExecutionPolicy",
        "Bypass",
        "-NoProfile",
        "-WindowStyle",
        "Hidden",
        "-Command",
        script,
    ]


def store_contains_fingerprint(output: str, fingerprint: str) -> bool:
    """Case and separator insensitive search of certutil output."""
    haystack = re.sub(r"\s", "", output).lower()
    return normalize_fingerprint(fingerprint) in haystack


def parse_inner_exit_code(output: str) -> Optional[int]:
    match = _EXIT_CODE_PATTERN.search(output)
    return int(match.group(1)) if match else None


def classify_install(result: CommandResult) -> InstallState:
    """
    Map the elevated PowerShell run to a terminal install state.

    The inner certutil exit code wins; the wrapper exit code only counts when
    no inner code was printed.
    """
    inner_code = parse_inner_exit_code(result.stdout)
    if inner_code == 0:
        return InstallState.SUCCESS
    if inner_code is None and result.returncode == 0:
        return InstallState.SUCCESS
    if contains_phrase(result.output, CANCELLATION_PHRASES):
        return InstallState.USER_CANCELLED
    return InstallState.FAILED


class WindowsTrustManager(TrustManager):
    """Trust manager for the Windows certificate store."""

    platform = Platform.WINDOWS

    async def _probe(self, content: str, info: CertificateInfo) -> bool:
        result = await run_command(list_store_command())
        if not result.ok:
            logger.info(f"Failed to list {ROOT_STORE} store certificates (exit code {result.returncode})")
            return False
        return store_contains_fingerprint(result.stdout, info.fingerprint)

    async def _install_file(self, attempt: InstallAttempt, path: Path, content: str) -> InstallResult:
        attempt.transition(InstallState.ELEVATION_REQUESTED)
        result = await run_command(elevated_add_command(path))
        logger.debug(f"PowerShell output: {result.stdout.strip()}")

        state = classify_install(result)
        if state == InstallState.SUCCESS:
            return attempt.succeed(MSG_INSTALLED)
        if state == InstallState.USER_CANCELLED:
            return attempt.cancel(MSG_USER_CANCELLED)
        code = parse_inner_exit_code(result.stdout)
        return attempt.fail(MSG_FAILED.format(code=code if code is not None else "unknown"))
