"""Tests for external tool execution."""

import subprocess
from unittest.mock import Mock

from easydmg.storage.process import SPAWN_FAILURE_STATUS, ProcessRunner, run_command


class TestRunCommand:
    """Tests for run_command()."""

    def test_captures_output(self, mocker):
        run = mocker.patch(
            "easydmg.storage.process.subprocess.run",
            return_value=Mock(returncode=0, stdout="/dev/disk4s1\t/Volumes/MyApp\n", stderr=""),
        )

        result = run_command("/usr/bin/hdiutil", ["attach", "/tmp/MyApp.dmg"])

        assert result.ok
        assert result.stdout == "/dev/disk4s1\t/Volumes/MyApp\n"
        args, kwargs = run.call_args
        assert args[0] == ["/usr/bin/hdiutil", "attach", "/tmp/MyApp.dmg"]
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert "shell" not in kwargs

    def test_nonzero_exit(self, mocker):
        mocker.patch(
            "easydmg.storage.process.subprocess.run",
            return_value=Mock(returncode=1, stdout="", stderr="hdiutil: detach failed\n"),
        )

        result = run_command("/usr/bin/hdiutil", ["detach", "/Volumes/MyApp"])

        assert not result.ok
        assert result.returncode == 1
        assert result.stderr == "hdiutil: detach failed\n"

    def test_none_output_becomes_empty(self, mocker):
        mocker.patch(
            "easydmg.storage.process.subprocess.run",
            return_value=Mock(returncode=0, stdout=None, stderr=None),
        )

        result = run_command("/usr/bin/xattr")

        assert result.stdout == ""
        assert result.stderr == ""

    def test_spawn_failure(self, mocker):
        mocker.patch(
            "easydmg.storage.process.subprocess.run", side_effect=FileNotFoundError("hdiutil")
        )

        result = run_command("/usr/bin/hdiutil", ["info"])

        assert result.returncode == SPAWN_FAILURE_STATUS
        assert result.stdout == ""

    def test_timeout(self, mocker):
        mocker.patch(
            "easydmg.storage.process.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="hdiutil", timeout=1),
        )

        assert run_command("/usr/bin/hdiutil", timeout=1).returncode == SPAWN_FAILURE_STATUS


class TestProcessRunner:
    """Tests for ProcessRunner."""

    def test_passes_timeout(self, mocker):
        run = mocker.patch("easydmg.storage.process.run_command")

        ProcessRunner(timeout=30).run("/usr/bin/ditto", ["a", "b"])

        run.assert_called_once_with("/usr/bin/ditto", ["a", "b"], timeout=30)

    def test_default_has_no_timeout(self):
        assert ProcessRunner().timeout is None
