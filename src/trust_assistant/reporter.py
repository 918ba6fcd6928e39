"""Report generation (text and JSON)."""

import json
from io import StringIO
from typing import Any, List, Sequence, Tuple

from rich.console import Console

from trust_assistant.diagnostics import EnvironmentReport
from trust_assistant.models import (
    BatchInstallResult,
    CertificateEntry,
    InstallResult,
    ReachabilityRequest,
    ReachabilityResult,
)

# Global flag for colored output
_use_color = True

_WIDTH = 70


def set_color_output(enabled: bool) -> None:
    """Enable or disable colored output."""
    global _use_color
    _use_color = enabled


def _format_status(ok: bool, label: str, warn: bool = False) -> str:
    """Format a status label with visual indicator."""
    if ok:
        text, style, mark = label, "green", "✓"
    elif warn:
        text, style, mark = label, "yellow", "⚠"
    else:
        text, style, mark = label, "red", "✗"

    if not _use_color:
        return f"{text} {mark}"
    output = StringIO()
    console = Console(file=output, force_terminal=True, width=1000)
    console.print(f"[{style}]{text} {mark}[/{style}]", end="", markup=True, highlight=False)
    return output.getvalue().strip()


def _header(title: str) -> List[str]:
    return ["=" * _WIDTH, title, "=" * _WIDTH]


def generate_certificate_report(entries: Sequence[CertificateEntry]) -> str:
    """Human-readable listing of certificates and their trust status."""
    lines = _header("Certificate Trust Report")
    if not entries:
        lines.append("No certificates found.")
        lines.append("=" * _WIDTH)
        return "\n".join(lines)

    for entry in entries:
        info = entry.info
        status = _format_status(entry.is_installed, "TRUSTED" if entry.is_installed else "NOT TRUSTED", warn=True)
        lines.append("")
        lines.append(f"{entry.filename}: {status}")
        lines.append(f"  Common Name: {info.common_name}")
        lines.append(f"  Subject: {info.subject}")
        lines.append(f"  Issuer: {info.issuer}")
        lines.append(f"  Valid: {info.valid_from} to {info.valid_to}")
        lines.append(f"  Serial Number: {info.serial_number}")
        lines.append(f"  Fingerprint (SHA-1): {info.fingerprint}")

    trusted = sum(1 for e in entries if e.is_installed)
    lines.append("")
    lines.append(f"Summary: {trusted}/{len(entries)} certificate(s) trusted")
    lines.append("=" * _WIDTH)
    return "\n".join(lines)


def format_install_result(filename: str, result: InstallResult) -> str:
    if result.success:
        return f"{filename}: {_format_status(True, 'INSTALLED')} {result.message}"
    label = "CANCELLED" if result.cancelled else "FAILED"
    return f"{filename}: {_format_status(False, label, warn=result.cancelled)} {result.error}"


def generate_install_report(results: Sequence[BatchInstallResult]) -> str:
    lines = _header("Certificate Installation Report")
    if not results:
        lines.append("Nothing to install: all certificates are already trusted.")
    for item in results:
        lines.append(format_install_result(item.filename, item.result))
    if results:
        succeeded = sum(1 for item in results if item.result.success)
        lines.append("")
        lines.append(f"Summary: {succeeded}/{len(results)} installation(s) succeeded")
    lines.append("=" * _WIDTH)
    return "\n".join(lines)


def _describe_target(target: Any) -> str:
    if isinstance(target, ReachabilityRequest):
        return f"{target.type.value} {target.target}"
    if isinstance(target, dict):
        kind = target.get("type", "ping")
        return f"{kind} {target.get('url') or target.get('domain') or '?'}"
    return f"ping {target}"


def generate_reachability_report(results: Sequence[Tuple[Any, ReachabilityResult]]) -> str:
    lines = _header("Network Reachability Report")
    for target, result in results:
        if result.accessible:
            timing = f" {result.response_time_ms} ms" if result.response_time_ms is not None else ""
            ip = f" ({result.ip})" if result.ip else ""
            lines.append(f"{_describe_target(target)}{ip}: {_format_status(True, 'REACHABLE')}{timing}")
        else:
            lines.append(f"{_describe_target(target)}: {_format_status(False, 'UNREACHABLE')} {result.error_message}")
    reachable = sum(1 for _, r in results if r.accessible)
    lines.append("")
    lines.append(f"Summary: {reachable}/{len(results)} target(s) reachable")
    lines.append("=" * _WIDTH)
    return "\n".join(lines)


def generate_environment_report(report: EnvironmentReport) -> str:
    lines = _header("Trust Assistant Environment")
    lines.append(f"Platform: {report.platform.value}")
    lines.append(f"System: {report.system}")
    lines.append(f"Python: {report.python_version}")
    lines.append(f"OpenSSL: {report.openssl_version}")
    lines.append("")
    lines.append("Required tools:")
    for tool in report.tools:
        name = " | ".join(tool.names)
        if tool.available:
            lines.append(f"  {name}: {_format_status(True, 'found')} {tool.path} ({tool.purpose})")
        else:
            lines.append(f"  {name}: {_format_status(False, 'missing')} ({tool.purpose})")
    lines.append("=" * _WIDTH)
    return "\n".join(lines)


def generate_json_report(data: Any) -> str:
    """
    Generate JSON for a result object or a list of them.

    Objects are rendered through their ``to_dict()`` wire shape.
    """
    def serialize(obj: Any) -> Any:
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        raise TypeError(f"Type {type(obj)} not serializable")

    return json.dumps(data, indent=2, default=serialize, ensure_ascii=False)
