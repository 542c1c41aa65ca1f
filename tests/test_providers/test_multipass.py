"""Tests for the multipass provider."""

import json
import subprocess
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from flotilla.errors import LaunchFailed, PurgeFailed, ReportFailed, ToolingAbsent
from flotilla.models.config import GlobalConfig
from flotilla.models.network import NetworkAttachment
from flotilla.providers.base import CommandOutcome, ProviderStatus
from flotilla.providers.multipass import MultipassProvider
from flotilla.utils.process import CommandResult


NOT_FOUND = 'delete failed: The following errors occurred:\ninstance "pihole1" does not exist\n'


@pytest.fixture
def provider():
    """Create multipass provider instance."""
    return MultipassProvider()


@pytest.fixture
def attachment():
    return NetworkAttachment(kind="switch", argument="ExternalSwitch", switch_name="ExternalSwitch")


@pytest.mark.asyncio
class TestDelete:
    """Test delete/purge outcomes."""

    async def test_delete_success(self, provider):
        """Test a successful purge."""
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=0)

            result = await provider.delete("pihole1")

            mock_run.assert_called_once_with(["multipass", "delete", "pihole1", "--purge"], check=False)
            assert result.outcome is CommandOutcome.OK

    async def test_delete_missing_is_not_found(self, provider):
        """Test deleting an unknown instance reports NOT_FOUND."""
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=2, stderr=NOT_FOUND)

            result = await provider.delete("pihole1")

            assert result.outcome is CommandOutcome.NOT_FOUND
            result.raise_for_outcome(PurgeFailed, missing_ok=True)

    async def test_delete_twice_never_raises(self, provider):
        """Test repeated purges of the same name are both tolerated."""
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.side_effect = [
                CommandResult(returncode=0),
                CommandResult(returncode=2, stderr=NOT_FOUND),
            ]

            first = await provider.delete("pihole1")
            second = await provider.delete("pihole1")

            for result in (first, second):
                result.raise_for_outcome(PurgeFailed, missing_ok=True)

    async def test_delete_genuine_failure(self, provider):
        """Test other failures are reported as FAILED."""
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=1, stderr="permission denied")

            result = await provider.delete("pihole1")

            assert result.outcome is CommandOutcome.FAILED
            with pytest.raises(PurgeFailed, match="pihole1: permission denied"):
                result.raise_for_outcome(PurgeFailed, missing_ok=True)

    async def test_soft_delete(self, provider):
        """Test purge can be disabled."""
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=0)

            await provider.delete("pihole1", purge=False)

            assert mock_run.call_args[0][0] == ["multipass", "delete", "pihole1"]


@pytest.mark.asyncio
class TestLaunch:
    """Test instance launch."""

    async def test_launch_arguments(self, provider, attachment):
        """Test the launch command line."""
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            await provider.launch("pihole1", attachment, Path("pihole1-cloud-init.yaml"))

            cmd = mock_run.call_args[0][0]
            assert cmd == [
                "multipass", "launch",
                "--name", "pihole1",
                "--memory", "1G",
                "--network", "ExternalSwitch",
                "--cloud-init", "pihole1-cloud-init.yaml",
                "--timeout", "600",
            ]
            # The subprocess bound exceeds multipass's own timeout
            assert mock_run.call_args.kwargs["timeout"] > 600

    async def test_launch_uses_config(self, provider, attachment):
        """Test configured memory, timeout and image are passed through."""
        await provider.initialize(GlobalConfig(
            identity="x", switch_name="s", memory="2G", launch_timeout=900, image="24.04"
        ))

        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            await provider.launch("pihole1", attachment, Path("f.yaml"))

            cmd = mock_run.call_args[0][0]
            assert cmd[:3] == ["multipass", "launch", "24.04"]
            assert cmd[cmd.index("--memory") + 1] == "2G"
            assert cmd[cmd.index("--timeout") + 1] == "900"

    async def test_launch_failure(self, provider, attachment):
        """Test non-zero exit becomes LaunchFailed."""
        error = subprocess.CalledProcessError(1, ["multipass"])
        error.stderr = "launch failed: Remote \"\" is unknown"
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock, side_effect=error):
            with pytest.raises(LaunchFailed, match="pihole1"):
                await provider.launch("pihole1", attachment, Path("f.yaml"))

    async def test_launch_timeout(self, provider, attachment):
        """Test exceeding the timeout becomes LaunchFailed."""
        error = subprocess.TimeoutExpired(["multipass"], 660)
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock, side_effect=error):
            with pytest.raises(LaunchFailed, match="timed out"):
                await provider.launch("pihole1", attachment, Path("f.yaml"))


@pytest.mark.asyncio
class TestQueries:
    """Test read-only multipass queries."""

    async def test_list(self, provider):
        """Test list output parsing."""
        payload = {"list": [
            {"name": "pihole1", "state": "Running", "ipv4": ["192.168.8.53"], "release": "Ubuntu 24.04 LTS"},
            {"name": "pihole2", "state": "Stopped", "ipv4": [], "release": "Ubuntu 24.04 LTS"},
        ]}
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=0, stdout=json.dumps(payload))

            entries = await provider.list()

            mock_run.assert_called_once_with(["multipass", "list", "--format", "json"])
            assert [e.name for e in entries] == ["pihole1", "pihole2"]
            assert entries[0].ipv4 == ["192.168.8.53"]
            assert entries[1].state == "Stopped"

    async def test_list_failure(self, provider):
        """Test a failed listing raises ReportFailed."""
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.side_effect = subprocess.CalledProcessError(
                1, ["multipass", "list"], output="", stderr="list failed: cannot connect to the multipass socket"
            )

            with pytest.raises(ReportFailed, match="cannot connect"):
                await provider.list()

    async def test_list_garbage_output(self, provider):
        """Test unparseable listing output raises ReportFailed."""
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=0, stdout="Name State\npihole1 Running")

            with pytest.raises(ReportFailed, match="Unparseable"):
                await provider.list()

    async def test_status(self, provider):
        """Test status maps info results."""
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=0, stdout="{}")
            assert await provider.status("pihole1") == ProviderStatus.PRESENT

            mock_run.return_value = CommandResult(returncode=2, stderr='info failed: instance "x" does not exist')
            assert await provider.status("x") == ProviderStatus.ABSENT

    async def test_preflight_missing_tool(self, provider):
        """Test missing multipass is reported as ToolingAbsent."""
        with patch("flotilla.utils.process.shutil.which", return_value=None):
            with pytest.raises(ToolingAbsent, match="multipass"):
                await provider.preflight()
