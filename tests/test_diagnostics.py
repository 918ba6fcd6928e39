"""Tests for environment diagnostics."""

from unittest.mock import patch

from trust_assistant.diagnostics import collect_environment, find_command
from trust_assistant.platforms import Platform


def test_find_command_prefers_path():
    with patch("trust_assistant.diagnostics.shutil.which", return_value="/opt/bin/security"):
        assert find_command("security") == "/opt/bin/security"


def test_find_command_falls_back_to_known_paths(tmp_path):
    fake = tmp_path / "security"
    fake.write_text("")
    with patch("trust_assistant.diagnostics.shutil.which", return_value=None), \
            patch.dict("trust_assistant.diagnostics.KNOWN_PATHS", {"security": (str(fake),)}):
        assert find_command("security") == str(fake)
    with patch("trust_assistant.diagnostics.shutil.which", return_value=None):
        assert find_command("no-such-tool") is None


def test_collect_environment_accepts_any_alternative():
    available = {"pkexec": "/usr/bin/pkexec", "update-ca-trust": "/usr/bin/update-ca-trust"}
    with patch("trust_assistant.diagnostics.find_command", side_effect=available.get):
        report = collect_environment(Platform.LINUX)

    assert report.platform == Platform.LINUX
    assert [tool.path for tool in report.tools] == ["/usr/bin/pkexec", "/usr/bin/update-ca-trust", None]
    assert [tool.names for tool in report.missing] == [("ping",)]
    assert not report.healthy
    assert report.python_version


def test_collect_environment_windows_tools():
    with patch("trust_assistant.diagnostics.find_command", side_effect=lambda name: f"C:\\bin\\{name}"):
        report = collect_environment(Platform.WINDOWS)

    assert report.healthy
    assert [tool.names[0] for tool in report.tools] == ["certutil", "powershell.exe", "ping"]
