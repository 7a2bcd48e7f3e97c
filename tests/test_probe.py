"""Tests for the availability probe."""

import time

import pytest
from conftest import FakeLauncher, FakePopen

from deploykit.core.execution import (
    KUBECTL,
    SKAFFOLD,
    AvailabilityProber,
    ProcessLauncher,
    SpawnFailureError,
)
from deploykit.core.execution.launcher import IS_WINDOWS


class TestProbeWithFakes:
    """Probe decisions against a launcher double."""

    def test_exit_zero_is_available(self):
        launcher = FakeLauncher()
        prober = AvailabilityProber(SKAFFOLD, lambda: "/bin/skaffold", launcher=launcher)
        assert prober.is_available() is True
        assert launcher.argvs == [("/bin/skaffold", "version")]

    def test_nonzero_exit_is_unavailable(self):
        launcher = FakeLauncher({"version": lambda: FakePopen(returncode=1)})
        prober = AvailabilityProber(KUBECTL, lambda: "kubectl", launcher=launcher)
        assert prober.is_available() is False

    def test_spawn_failure_is_unavailable(self):
        launcher = FakeLauncher({"version": SpawnFailureError("kubectl", "not found")})
        prober = AvailabilityProber(KUBECTL, lambda: "/missing/kubectl", launcher=launcher)
        assert prober.is_available() is False

    def test_locator_failure_is_unavailable(self):
        def broken_locator():
            raise RuntimeError("config unreadable")

        prober = AvailabilityProber(SKAFFOLD, broken_locator, launcher=FakeLauncher())
        assert prober.is_available() is False


class TestProbeWithProcesses:
    """Probe decisions against real processes."""

    def test_missing_binary(self, tmp_path):
        """A resolved path that does not exist makes spawning fail."""
        missing = str(tmp_path / "skaffold")
        prober = AvailabilityProber(SKAFFOLD, lambda: missing, launcher=ProcessLauncher())
        assert prober.is_available() is False

    @pytest.mark.skipif(IS_WINDOWS, reason="Uses /bin/sh scripts")
    def test_version_exits_zero(self, make_tool):
        tool = make_tool("skaffold", 'test "$1" = version && echo v2.13.0')
        prober = AvailabilityProber(SKAFFOLD, lambda: tool)
        assert prober.is_available() is True

    @pytest.mark.skipif(IS_WINDOWS, reason="Uses /bin/sh scripts")
    def test_version_exits_nonzero(self, make_tool):
        tool = make_tool("kubectl", "exit 1")
        prober = AvailabilityProber(KUBECTL, lambda: tool)
        assert prober.is_available() is False

    @pytest.mark.skipif(IS_WINDOWS, reason="Uses /bin/sh scripts")
    def test_hanging_probe_is_killed(self, make_tool):
        """A probe still running at the deadline counts as unavailable."""
        tool = make_tool("kubectl", "exec sleep 30")
        prober = AvailabilityProber(KUBECTL, lambda: tool, timeout_seconds=0.2)

        start = time.monotonic()
        assert prober.is_available() is False
        assert time.monotonic() - start < 5
