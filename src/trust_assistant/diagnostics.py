"""
Environment diagnostics.

Reports which trust store and network utilities the current platform needs
and whether they can be found, so that "not installed" / "failed" results
caused by a missing tool can be told apart from real ones.
"""

import platform as platform_module
import shutil
import ssl
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from trust_assistant.platforms import Platform, detect_platform

# Known absolute locations, checked when the tool is not on PATH
KNOWN_PATHS: Dict[str, Tuple[str, ...]] = {
    "security": ("/usr/bin/security",),
    "osascript": ("/usr/bin/osascript",),
    "certutil": (r"C:\Windows\System32\certutil.exe",),
    "powershell.exe": (r"C:\Windows\System32\WindowsPowerShell\v1.0\powershell.exe",),
    "pkexec": ("/usr/bin/pkexec",),
    "update-ca-certificates": ("/usr/sbin/update-ca-certificates",),
    "update-ca-trust": ("/usr/bin/update-ca-trust",),
    "ping": ("/sbin/ping", "/bin/ping", "/usr/bin/ping", r"C:\Windows\System32\PING.EXE"),
}

# (tool, purpose); a tuple of alternatives means any one of them is enough
REQUIRED_TOOLS: Dict[Platform, List[Tuple[Tuple[str, ...], str]]] = {
    Platform.WINDOWS: [
        (("certutil",), "trust store listing and installation"),
        (("powershell.exe",), "UAC elevation"),
        (("ping",), "ping reachability checks"),
    ],
    Platform.MACOS: [
        (("security",), "keychain search and installation"),
        (("osascript",), "administrator privilege prompt"),
        (("ping",), "ping reachability checks"),
    ],
    Platform.LINUX: [
        (("pkexec",), "privilege elevation"),
        (("update-ca-certificates", "update-ca-trust"), "CA bundle refresh"),
        (("ping",), "ping reachability checks"),
    ],
}


@dataclass
class ToolStatus:
    """Lookup result for one required utility."""

    names: Tuple[str, ...]
    purpose: str
    path: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.path is not None


@dataclass
class EnvironmentReport:
    """Snapshot of everything the trust and reachability checks depend on."""

    platform: Platform
    system: str
    python_version: str
    openssl_version: str
    tools: List[ToolStatus] = field(default_factory=list)

    @property
    def missing(self) -> List[ToolStatus]:
        return [tool for tool in self.tools if not tool.available]

    @property
    def healthy(self) -> bool:
        return not self.missing


def find_command(cmd_name: str) -> Optional[str]:
    """Find a command on PATH or at its known absolute locations."""
    found = shutil.which(cmd_name)
    if found:
        return found
    for path in KNOWN_PATHS.get(cmd_name, ()):
        if Path(path).exists():
            return path
    return None


def collect_environment(platform: Optional[Platform] = None) -> EnvironmentReport:
    platform = platform or detect_platform()
    report = EnvironmentReport(
        platform=platform,
        system=f"{platform_module.system()} {platform_module.release()} ({platform_module.machine()})",
        python_version=sys.version.split()[0],
        openssl_version=ssl.OPENSSL_VERSION,
    )
    for names, purpose in REQUIRED_TOOLS[platform]:
        path = None
        for name in names:
            path = find_command(name)
            if path:
                break
        report.tools.append(ToolStatus(names=names, purpose=purpose, path=path))
    return report
