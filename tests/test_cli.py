"""
Tests for the deploykit CLI.

The service layer is mocked; these tests cover argument parsing, output
and exit codes.
"""

from collections.abc import Generator
from importlib import metadata
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from conftest import FakePopen
from typer.testing import CliRunner

from deploykit import __version__
from deploykit.cli import app
from deploykit.cli.errors import ExitCode, exit_code_for
from deploykit.cli.skaffold import parse_labels, stream_process
from deploykit.core.execution import (
    InvalidConfigurationError,
    KubectlMode,
    NonZeroExitError,
    SkaffoldMode,
    SpawnFailureError,
    ToolNotAvailableError,
    ToolProcess,
)
from deploykit.core.services import ToolStatus

runner = CliRunner()


@pytest.fixture(autouse=True)
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command from an empty project directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    return tmp_path


@pytest.fixture
def mock_service() -> MagicMock:
    service = MagicMock()
    service.skaffold.kill_grace_seconds = 1.0
    return service


@pytest.fixture
def patched_services(mock_service: MagicMock) -> Generator[MagicMock, None, None]:
    """Make every command use the mock service."""
    with (
        patch("deploykit.cli.skaffold.DeployService") as skaffold_cls,
        patch("deploykit.cli.kubectl.DeployService") as kubectl_cls,
        patch("deploykit.cli.doctor.DeployService") as doctor_cls,
    ):
        for cls in (skaffold_cls, kubectl_cls, doctor_cls):
            cls.from_config.return_value = mock_service
        yield mock_service


class TestVersion:
    """Tests for the version command."""

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"deploykit version {__version__}" in result.output

    def test_version_matches_package_metadata(self):
        assert __version__ == metadata.version("deploykit")


class TestSkaffoldCommands:
    """Tests for `deploykit skaffold ...`."""

    def test_run_streams_output(self, patched_services):
        patched_services.start_skaffold.return_value = ToolProcess(
            FakePopen(b"Building...\nDeployments stabilized\n"), "skaffold run"
        )

        result = runner.invoke(
            app,
            ["skaffold", "run", "-f", "sk.yaml", "--label", "team=web", "--tail"],
        )

        assert result.exit_code == 0
        assert "Building..." in result.output
        assert "Deployments stabilized" in result.output
        patched_services.start_skaffold.assert_called_once_with(
            SkaffoldMode.SINGLE_RUN,
            working_directory=None,
            config_file_path="sk.yaml",
            profile=None,
            labels=[("team", "web")],
            tail_logs_after_deploy=True,
            default_image_repo=None,
        )

    def test_dev_exit_code_propagates(self, patched_services):
        patched_services.start_skaffold.return_value = ToolProcess(
            FakePopen(b"", returncode=3), "skaffold dev"
        )
        result = runner.invoke(app, ["skaffold", "dev"])
        assert result.exit_code == 3
        assert patched_services.start_skaffold.call_args.args == (SkaffoldMode.DEV,)

    def test_debug_command(self, patched_services):
        patched_services.start_skaffold.return_value = ToolProcess(FakePopen(), "skaffold debug")
        result = runner.invoke(app, ["skaffold", "debug", "--profile", "local"])
        assert result.exit_code == 0
        call = patched_services.start_skaffold.call_args
        assert call.args == (SkaffoldMode.DEBUG,)
        assert call.kwargs["profile"] == "local"

    def test_spawn_failure(self, patched_services):
        patched_services.start_skaffold.side_effect = SpawnFailureError(
            "skaffold", "Failed to start skaffold: No such file or directory"
        )
        result = runner.invoke(app, ["skaffold", "dev"])
        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "SpawnFailure" in result.output

    def test_bad_label(self, patched_services):
        result = runner.invoke(app, ["skaffold", "run", "--label", "novalue"])
        assert result.exit_code == ExitCode.USER_ERROR
        patched_services.start_skaffold.assert_not_called()

    def test_init_prints_output(self, patched_services):
        patched_services.run_skaffold.return_value = "Configuration skaffold.yaml was written"
        result = runner.invoke(app, ["skaffold", "init", "--force"])
        assert result.exit_code == 0
        assert "Configuration skaffold.yaml was written" in result.output
        patched_services.run_skaffold.assert_called_once_with(
            SkaffoldMode.INIT,
            config_file_path=None,
            analyze_on_init=False,
            force_init=True,
            working_directory=None,
        )

    def test_init_conflicting_flags(self, patched_services):
        patched_services.run_skaffold.side_effect = InvalidConfigurationError(
            "skaffold", "--analyze and --force cannot be used together"
        )
        result = runner.invoke(app, ["skaffold", "init", "--analyze", "--force"])
        assert result.exit_code == ExitCode.USER_ERROR


class TestKubectlCommand:
    """Tests for `deploykit kubectl ...`."""

    def test_passes_flags_through(self, patched_services):
        patched_services.run_kubectl.return_value = "pod/web-1\npod/web-2"

        result = runner.invoke(app, ["kubectl", "get", "--", "pods", "-o", "name"])

        assert result.exit_code == 0
        assert "pod/web-2" in result.output
        patched_services.run_kubectl.assert_called_once_with(
            KubectlMode.GET, ["pods", "-o", "name"], working_directory=None
        )

    def test_no_args(self, patched_services):
        patched_services.run_kubectl.return_value = ""
        result = runner.invoke(app, ["kubectl", "version"])
        assert result.exit_code == 0
        patched_services.run_kubectl.assert_called_once_with(
            KubectlMode.VERSION, [], working_directory=None
        )

    def test_unknown_mode(self, patched_services):
        result = runner.invoke(app, ["kubectl", "exec"])
        assert result.exit_code != 0
        patched_services.run_kubectl.assert_not_called()

    def test_nonzero_exit_code_propagates(self, patched_services):
        patched_services.run_kubectl.side_effect = NonZeroExitError(
            "kubectl", 5, "kubectl get pods exited with code 5"
        )
        result = runner.invoke(app, ["kubectl", "get", "--", "pods"])
        assert result.exit_code == 5

    def test_not_available(self, patched_services):
        patched_services.run_kubectl.side_effect = ToolNotAvailableError(
            "kubectl", "kubectl is not available."
        )
        result = runner.invoke(app, ["kubectl", "version"])
        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "ToolNotAvailable" in result.output


class TestDoctorCommand:
    """Tests for `deploykit doctor`."""

    def test_all_available(self, patched_services):
        patched_services.check_tools.return_value = [
            ToolStatus(name="skaffold", invocation="/opt/skaffold", overridden=True, available=True),
            ToolStatus(name="kubectl", invocation="kubectl", overridden=False, available=True),
        ]
        result = runner.invoke(app, ["doctor"])
        assert result.exit_code == 0
        assert "skaffold" in result.output
        assert "kubectl" in result.output

    def test_missing_tool(self, patched_services):
        patched_services.check_tools.return_value = [
            ToolStatus(name="skaffold", invocation="skaffold", overridden=False, available=False),
            ToolStatus(name="kubectl", invocation="kubectl", overridden=False, available=True),
        ]
        result = runner.invoke(app, ["doctor"])
        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "unavailable" in result.output


class TestHelpers:
    """Tests for CLI helpers."""

    def test_parse_labels(self):
        assert parse_labels(["a=1", "b=x=y", "c="]) == [("a", "1"), ("b", "x=y"), ("c", "")]
        assert parse_labels(None) == []

    @pytest.mark.parametrize("value", ["novalue", "=x"])
    def test_parse_labels_invalid(self, value):
        with pytest.raises(InvalidConfigurationError):
            parse_labels([value])

    def test_stream_process_interrupted(self):
        process = MagicMock()
        process.stdout.readline.side_effect = KeyboardInterrupt

        assert stream_process(process, grace_seconds=0.5) == ExitCode.SIGINT
        process.kill.assert_called_once_with(grace_seconds=0.5)
        process.close.assert_called_once()

    def test_exit_code_for(self):
        assert exit_code_for(NonZeroExitError("kubectl", 9, "boom")) == 9
        assert exit_code_for(InvalidConfigurationError("kubectl", "bad")) == ExitCode.USER_ERROR
        assert exit_code_for(SpawnFailureError("kubectl", "missing")) == ExitCode.GENERAL_ERROR
