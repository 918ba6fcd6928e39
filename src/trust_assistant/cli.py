"""CLI entry point using Typer."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer

from trust_assistant.certificate import parse_certificate
from trust_assistant.config import Settings
from trust_assistant.diagnostics import collect_environment
from trust_assistant.exceptions import ConfigurationError
from trust_assistant.models import CheckType, ReachabilityRequest
from trust_assistant.reporter import (
    format_install_result,
    generate_certificate_report,
    generate_environment_report,
    generate_install_report,
    generate_json_report,
    generate_reachability_report,
    set_color_output,
)
from trust_assistant.service import TrustAssistant

app = typer.Typer(help="Certificate trust and network reachability assistant")

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
)

EXIT_OK = 0
EXIT_NEGATIVE = 1  # not trusted, cancelled, unreachable
EXIT_FAILURE = 2


def _setup(verbose: bool, color: bool = True) -> Settings:
    """Load settings and apply logging/colour options shared by every command."""
    set_color_output(color)
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        logging.getLogger(__name__).error(str(e))
        sys.exit(EXIT_FAILURE)

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("trust_assistant").setLevel(logging.DEBUG)
    else:
        logging.getLogger("trust_assistant").setLevel(settings.log_level)
    return settings


def _read_certificate(file: Path) -> str:
    try:
        return file.read_bytes().decode("utf-8", errors="replace")
    except OSError as e:
        logging.getLogger(__name__).error(f"Cannot read {file}: {e}")
        sys.exit(EXIT_FAILURE)


@app.command("list")
def list_command(
    cert_dir: Optional[Path] = typer.Option(None, "--cert-dir", "-d", help="Certificate directory (default: ./cert)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    color: bool = typer.Option(True, "--color/--no-color", help="Enable/disable colored output"),
):
    """List certificate files and whether the OS trusts them."""
    settings = _setup(verbose, color)
    assistant = TrustAssistant(settings)
    entries = asyncio.run(assistant.list_certificates(cert_dir))

    if json_output:
        print(generate_json_report(entries))
    else:
        print(generate_certificate_report(entries))
    sys.exit(EXIT_OK)


@app.command()
def check(
    file: Path = typer.Argument(..., help="Certificate file (PEM or DER)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    color: bool = typer.Option(True, "--color/--no-color", help="Enable/disable colored output"),
):
    """Check whether a single certificate is trusted."""
    settings = _setup(verbose, color)
    content = _read_certificate(file)
    info = parse_certificate(content, file.name)

    assistant = TrustAssistant(settings)
    installed = asyncio.run(assistant.check_trust(content, info))

    if json_output:
        print(json.dumps({"filename": file.name, "info": info.to_dict(), "isInstalled": installed}, indent=2))
    else:
        status = "TRUSTED" if installed else "NOT TRUSTED"
        print(f"{file.name}: {status} ({info.fingerprint})")
    sys.exit(EXIT_OK if installed else EXIT_NEGATIVE)


@app.command()
def install(
    file: Path = typer.Argument(..., help="Certificate file (PEM or DER)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    color: bool = typer.Option(True, "--color/--no-color", help="Enable/disable colored output"),
):
    """Install a certificate into the OS trust store (prompts for elevation)."""
    settings = _setup(verbose, color)
    content = _read_certificate(file)

    assistant = TrustAssistant(settings)
    result = asyncio.run(assistant.install_trust(content))

    if json_output:
        print(generate_json_report(result))
    else:
        print(format_install_result(file.name, result))

    if result.success:
        sys.exit(EXIT_OK)
    sys.exit(EXIT_NEGATIVE if result.cancelled else EXIT_FAILURE)


@app.command("install-all")
def install_all(
    cert_dir: Optional[Path] = typer.Option(None, "--cert-dir", "-d", help="Certificate directory (default: ./cert)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    color: bool = typer.Option(True, "--color/--no-color", help="Enable/disable colored output"),
):
    """Install every certificate in the directory that is not trusted yet."""
    settings = _setup(verbose, color)
    assistant = TrustAssistant(settings)

    async def run():
        entries = await assistant.list_certificates(cert_dir)
        return await assistant.install_all_untrusted(entries)

    results = asyncio.run(run())

    if json_output:
        print(generate_json_report(results))
    else:
        print(generate_install_report(results))

    if any(not item.result.success and not item.result.cancelled for item in results):
        sys.exit(EXIT_FAILURE)
    if any(item.result.cancelled for item in results):
        sys.exit(EXIT_NEGATIVE)
    sys.exit(EXIT_OK)


@app.command()
def refresh(
    state_file: Path = typer.Argument(..., help="JSON array as printed by 'list --json' ('-' for stdin)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Re-check the trust status of a saved certificate list and print it as JSON."""
    settings = _setup(verbose)
    logger = logging.getLogger(__name__)
    try:
        raw = sys.stdin.read() if str(state_file) == "-" else state_file.read_text(encoding="utf-8")
        certificates = json.loads(raw)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read certificate state from {state_file}: {e}")
        sys.exit(EXIT_FAILURE)
    if not isinstance(certificates, list):
        logger.error(f"{state_file} must contain a JSON array")
        sys.exit(EXIT_FAILURE)

    assistant = TrustAssistant(settings)
    refreshed = asyncio.run(assistant.refresh_trust_status(certificates))
    print(generate_json_report(refreshed))
    sys.exit(EXIT_OK)


@app.command()
def domains(
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", "-c", help="Directory holding domains.json (default: ./config)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Show the configured reachability targets."""
    settings = _setup(verbose)
    targets = TrustAssistant(settings).list_domains(config_dir)

    if json_output:
        print(json.dumps(targets, indent=2, ensure_ascii=False))
    elif not targets:
        print("No reachability targets configured.")
    else:
        for target in targets:
            print(target if isinstance(target, str) else json.dumps(target, ensure_ascii=False))
    sys.exit(EXIT_OK)


@app.command()
def reach(
    targets: Optional[List[str]] = typer.Argument(None, help="Domains to ping or URLs to request (default: configured targets)"),
    http: bool = typer.Option(False, "--http", help="Treat targets as URLs and send HTTP HEAD requests"),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", "-c", help="Directory holding domains.json (default: ./config)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    color: bool = typer.Option(True, "--color/--no-color", help="Enable/disable colored output"),
):
    """Check network reachability by ping or HTTP HEAD."""
    settings = _setup(verbose, color)
    assistant = TrustAssistant(settings)

    if targets:
        requests = [
            ReachabilityRequest(type=CheckType.HTTP, url=t) if http else t
            for t in targets
        ]
    else:
        requests = assistant.list_domains(config_dir)
    if not requests:
        logging.getLogger(__name__).error("No targets given and no domains.json configured")
        sys.exit(EXIT_FAILURE)

    async def run():
        return await asyncio.gather(*(assistant.check_reachability(r) for r in requests))

    results = list(zip(requests, asyncio.run(run())))

    if json_output:
        print(generate_json_report([result for _, result in results]))
    else:
        print(generate_reachability_report(results))
    sys.exit(EXIT_OK if all(result.accessible for _, result in results) else EXIT_NEGATIVE)


@app.command()
def doctor(
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    color: bool = typer.Option(True, "--color/--no-color", help="Enable/disable colored output"),
):
    """Show the platform and whether the required OS utilities are available."""
    _setup(verbose, color)
    report = collect_environment()

    if json_output:
        data = {
            "platform": report.platform.value,
            "system": report.system,
            "python": report.python_version,
            "openssl": report.openssl_version,
            "tools": [
                {"names": list(tool.names), "purpose": tool.purpose, "path": tool.path}
                for tool in report.tools
            ],
        }
        print(json.dumps(data, indent=2))
    else:
        print(generate_environment_report(report))
    sys.exit(EXIT_OK if report.healthy else EXIT_NEGATIVE)


if __name__ == "__main__":
    app()
