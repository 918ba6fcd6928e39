"""Tests for the Linux trust manager."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from cryptography.hazmat.primitives import hashes, serialization

from trust_assistant.config import Settings
from trust_assistant.models import InstallState
from trust_assistant.process import CommandResult
from trust_assistant.trust.base import MSG_USER_CANCELLED
from trust_assistant.trust.linux import (
    DEBIAN_LAYOUT,
    MSG_COPY_FAILED,
    MSG_INSTALLED,
    MSG_REFRESH_FAILED,
    REDHAT_LAYOUT,
    LinuxTrustManager,
    TrustLayout,
    detect_trust_layout,
    installed_filename,
    scan_trust_files,
)


def test_installed_filename_is_stable(ca_pem, ca_cert):
    name = installed_filename(ca_pem, "install_cert_1")

    assert name == f"trust-assistant-{ca_cert.fingerprint(hashes.SHA1()).hex()[:16]}.crt"
    assert installed_filename(ca_pem, "install_cert_2") == name
    assert installed_filename("garbage", "install_cert_3") == "install_cert_3.crt"


def test_detect_trust_layout():
    with patch("trust_assistant.trust.linux.shutil.which", side_effect=lambda n: "/usr/bin/" + n):
        assert detect_trust_layout() == DEBIAN_LAYOUT
    with patch(
        "trust_assistant.trust.linux.shutil.which",
        side_effect=lambda n: "/usr/bin/update-ca-trust" if n == "update-ca-trust" else None,
    ):
        assert detect_trust_layout() == REDHAT_LAYOUT
    with patch("trust_assistant.trust.linux.shutil.which", return_value=None):
        assert detect_trust_layout() == DEBIAN_LAYOUT


def test_scan_trust_files(tmp_path, ca_pem, ca_cert, certificate_factory):
    other_pem = certificate_factory(common_name="Other").public_bytes(serialization.Encoding.PEM).decode("ascii")
    bundle = tmp_path / "ca-certificates.crt"
    bundle.write_text(other_pem, encoding="utf-8")
    anchors = tmp_path / "anchors"
    anchors.mkdir()
    layout = TrustLayout("test", str(anchors), ("true",))
    expected = ca_cert.fingerprint(hashes.SHA1()).hex()

    assert not scan_trust_files(expected, layout, bundle_files=(str(bundle),))

    (anchors / "corp.crt").write_text(ca_pem, encoding="utf-8")
    assert scan_trust_files(expected, layout, bundle_files=(str(bundle),))


@pytest.mark.asyncio
async def test_probe_reports_not_installed_by_default(settings, ca_pem, ca_info):
    manager = LinuxTrustManager(settings, layout=DEBIAN_LAYOUT)
    with patch("trust_assistant.trust.linux.scan_trust_files") as scan:
        assert await manager.check_installed(ca_pem, ca_info) is False
    scan.assert_not_called()


@pytest.mark.asyncio
async def test_probe_with_bundle_scan(tmp_path, ca_pem, ca_info):
    anchors = tmp_path / "anchors"
    anchors.mkdir()
    (anchors / "corp.crt").write_text(ca_pem, encoding="utf-8")
    manager = LinuxTrustManager(
        Settings(linux_scan_bundle=True),
        layout=TrustLayout("test", str(anchors), ("true",)),
    )

    assert await manager.check_installed(ca_pem, ca_info) is True


@pytest.mark.asyncio
async def test_install_copies_then_refreshes(settings, ca_pem):
    manager = LinuxTrustManager(settings, layout=DEBIAN_LAYOUT)
    with patch(
        "trust_assistant.trust.linux.run_command",
        new=AsyncMock(side_effect=[CommandResult(0), CommandResult(0)]),
    ) as run:
        result = await manager.install(ca_pem)

    assert result.success
    assert result.message == MSG_INSTALLED
    copy_cmd, refresh_cmd = (call.args[0] for call in run.await_args_list)
    assert copy_cmd[:2] == ["pkexec", "cp"]
    assert copy_cmd[3].startswith("/usr/local/share/ca-certificates/trust-assistant-")
    assert copy_cmd[3].endswith(".crt")
    assert refresh_cmd == ["pkexec", "update-ca-certificates"]
    assert list(Path(settings.temp_dir).iterdir()) == []


@pytest.mark.asyncio
async def test_install_redhat_refresh(settings, ca_pem):
    manager = LinuxTrustManager(settings, layout=REDHAT_LAYOUT)
    with patch(
        "trust_assistant.trust.linux.run_command",
        new=AsyncMock(side_effect=[CommandResult(0), CommandResult(0)]),
    ) as run:
        await manager.install(ca_pem)

    assert run.await_args_list[0].args[0][3].startswith("/etc/pki/ca-trust/source/anchors/")
    assert run.await_args_list[1].args[0] == ["pkexec", "update-ca-trust", "extract"]


@pytest.mark.asyncio
async def test_install_dismissed_dialog_is_cancellation(settings, ca_pem):
    manager = LinuxTrustManager(settings, layout=DEBIAN_LAYOUT)
    with patch(
        "trust_assistant.trust.linux.run_command",
        new=AsyncMock(return_value=CommandResult(126, "", "Error executing command as another user: Request dismissed")),
    ) as run:
        result = await manager.install(ca_pem)

    assert result.cancelled
    assert result.error == MSG_USER_CANCELLED
    assert run.await_count == 1


@pytest.mark.asyncio
async def test_install_copy_failure(settings, ca_pem):
    manager = LinuxTrustManager(settings, layout=DEBIAN_LAYOUT)
    with patch("trust_assistant.trust.linux.run_command", new=AsyncMock(return_value=CommandResult(127))):
        result = await manager.install(ca_pem)

    assert not result.success
    assert result.state == InstallState.FAILED
    assert result.error == MSG_COPY_FAILED


@pytest.mark.asyncio
async def test_install_refresh_failure(settings, ca_pem):
    manager = LinuxTrustManager(settings, layout=DEBIAN_LAYOUT)
    with patch(
        "trust_assistant.trust.linux.run_command",
        new=AsyncMock(side_effect=[CommandResult(0), CommandResult(1, "", "update failed")]),
    ):
        result = await manager.install(ca_pem)

    assert not result.success
    assert result.error == MSG_REFRESH_FAILED
