"""Tests for CLI command implementations."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from flotilla.cli.commands import choose_adapter, provision_fleet, render_instance, validate_config
from flotilla.errors import ConfigMalformed, ReportFailed
from flotilla.models.config import GlobalConfig
from flotilla.models.fleet import FleetRun, InstanceResult
from flotilla.models.network import NetworkAdapter


CONFIG = """
gh_name: octocat
windows_switch_name: ExternalSwitch
instances:
  - name: pihole1
    ip: 192.168.8.53/23
    gateway: 192.168.8.1
    dns: [8.8.8.8, 8.8.4.4]
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG)
    return path


class TestChooseAdapter:
    """Tests for the interactive adapter prompt."""

    @patch("flotilla.cli.commands.typer.prompt", return_value=2)
    def test_returns_selected_adapter(self, mock_prompt):
        """Test the 1-based choice maps to the adapter."""
        adapters = [NetworkAdapter(name="Ethernet"), NetworkAdapter(name="Wi-Fi")]

        assert choose_adapter(adapters).name == "Wi-Fi"
        mock_prompt.assert_called_once()


class TestRenderCommand:
    """Tests for render."""

    def test_render_prints_document(self, config_file, capsys):
        """Test the document is printed verbatim."""
        render_instance(config_file, "pihole1")

        out = capsys.readouterr().out
        assert out.startswith("#cloud-config\nhostname: pihole1\n")
        assert "addresses: [8.8.8.8,8.8.4.4]" in out

    def test_render_writes_file(self, config_file, tmp_path):
        """Test --output writes the document into a directory."""
        render_instance(config_file, "pihole1", output=tmp_path / "out")

        assert (tmp_path / "out" / "pihole1-cloud-init.yaml").read_text().startswith("#cloud-config")

    def test_render_unknown_instance(self, config_file):
        """Test unknown names are configuration errors."""
        with pytest.raises(ConfigMalformed):
            render_instance(config_file, "nope")

    def test_render_does_not_touch_vm_manager(self, config_file):
        """Test render never invokes multipass."""
        with patch("flotilla.providers.multipass.run_command", new_callable=AsyncMock) as mock_run:
            render_instance(config_file, "pihole1")

            mock_run.assert_not_called()


class TestValidateCommand:
    """Tests for config validate."""

    @patch("flotilla.cli.commands.console")
    def test_validate(self, mock_console, config_file):
        """Test a valid file is reported as valid."""
        validate_config(config_file)

        printed = [str(c.args[0]) for c in mock_console.print.call_args_list if c.args]
        assert any("Configuration is valid" in p for p in printed)


class TestProvisionCommand:
    """Tests for provision output."""

    def test_summary_survives_failed_listing(self, tmp_path, capsys):
        """Test the summary is shown even when the final listing fails."""
        run = FleetRun(results=[InstanceResult(name="pihole1", launched=True)])

        manager = MagicMock()
        manager.select.return_value = []
        engine = MagicMock()
        engine.config = GlobalConfig(identity="octocat", switch_name="ExternalSwitch", work_dir=tmp_path)
        engine.preflight = AsyncMock()
        engine.resolve_network = AsyncMock()
        engine.provision_all = AsyncMock(return_value=run)
        engine.report = AsyncMock(side_effect=ReportFailed("multipass list failed (exit 1): boom"))

        with patch("flotilla.cli.commands._load", new_callable=AsyncMock, return_value=(manager, engine)):
            returned = provision_fleet(None)

        out = capsys.readouterr().out
        assert returned is run
        assert "Provisioning summary" in out
        assert "pihole1" in out
        assert "Could not list instances" in out
        assert "boom" in out
