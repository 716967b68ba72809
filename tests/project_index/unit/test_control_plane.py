"""Unit tests for compositor control planes."""

import subprocess
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from project_index.core.errors import ControlPlaneUnavailable
from project_index.services import control_plane as cp
from project_index.services.control_plane import (
    HyprlandControlPlane,
    NullControlPlane,
    SwayControlPlane,
    detect_control_plane,
)


@pytest.fixture
def hyprctl(monkeypatch):
    """Record hyprctl invocations; every call succeeds unless told otherwise."""
    calls = []
    state = {"returncode": 0}

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, state["returncode"], stdout="ok", stderr="")

    monkeypatch.setattr(cp.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(cp.subprocess, "run", fake_run)
    return SimpleNamespace(calls=calls, state=state)


class TestHyprlandControlPlane:

    def test_available_when_monitors_succeeds(self, hyprctl):
        assert HyprlandControlPlane().is_available()
        assert hyprctl.calls == [["hyprctl", "monitors"]]

    def test_unavailable_when_monitors_fails(self, hyprctl):
        hyprctl.state["returncode"] = 1
        assert not HyprlandControlPlane().is_available()

    def test_unavailable_without_binary(self, monkeypatch):
        monkeypatch.setattr(cp.shutil, "which", lambda name: None)
        assert not HyprlandControlPlane().is_available()

    def test_switch_workspace(self, hyprctl):
        HyprlandControlPlane().switch_workspace("3")
        assert hyprctl.calls == [["hyprctl", "dispatch", "workspace", "3"]]

    def test_launch_quotes_argv(self, hyprctl):
        HyprlandControlPlane().launch(["alacritty", "-e", "bash", "-c", "npm start; exec bash"],
                                      cwd=Path("/p/my app"))
        assert hyprctl.calls == [[
            "hyprctl", "dispatch", "exec", "--",
            "cd '/p/my app' && exec alacritty -e bash -c 'npm start; exec bash'",
        ]]

    def test_open_url(self, hyprctl):
        HyprlandControlPlane().open_url("http://localhost:3000")
        assert hyprctl.calls == [["hyprctl", "dispatch", "exec", "--", "xdg-open http://localhost:3000"]]

    def test_failed_dispatch_raises(self, hyprctl):
        hyprctl.state["returncode"] = 1
        with pytest.raises(ControlPlaneUnavailable):
            HyprlandControlPlane().switch_workspace("3")


class TestSwayControlPlane:

    @pytest.fixture
    def connection(self, monkeypatch):
        conn = MagicMock()
        conn.command.return_value = [SimpleNamespace(success=True, error=None)]
        monkeypatch.setattr(cp.i3ipc, "Connection", MagicMock(return_value=conn))
        return conn

    def test_unavailable_without_socket(self, monkeypatch):
        monkeypatch.delenv("SWAYSOCK", raising=False)
        monkeypatch.delenv("I3SOCK", raising=False)
        assert not SwayControlPlane().is_available()

    def test_available_with_socket(self, connection):
        assert SwayControlPlane(socket_path="/run/sway.sock").is_available()
        connection.get_version.assert_called_once()

    def test_connection_failure(self, connection):
        connection.get_version.side_effect = ConnectionRefusedError()
        assert not SwayControlPlane(socket_path="/run/sway.sock").is_available()

    def test_switch_workspace(self, connection):
        SwayControlPlane(socket_path="/run/sway.sock").switch_workspace("4")
        connection.command.assert_called_once_with("workspace number 4")

    def test_launch(self, connection):
        SwayControlPlane(socket_path="/run/sway.sock").launch(["foot", "--working-directory", "/p"])
        connection.command.assert_called_once_with("exec foot --working-directory /p")

    def test_failed_command_raises(self, connection):
        connection.command.return_value = [SimpleNamespace(success=False, error="Unknown command")]
        with pytest.raises(ControlPlaneUnavailable, match="Unknown command"):
            SwayControlPlane(socket_path="/run/sway.sock").switch_workspace("4")


class TestNullControlPlane:

    def test_never_available(self):
        plane = NullControlPlane()
        assert not plane.is_available()
        with pytest.raises(ControlPlaneUnavailable):
            plane.launch(["true"])


class TestDetectControlPlane:

    @pytest.mark.parametrize("choice,expected", [
        ("hyprland", HyprlandControlPlane),
        ("sway", SwayControlPlane),
        ("none", NullControlPlane),
    ])
    def test_explicit_choice(self, config, choice, expected):
        config = config.model_copy(update={"compositor": choice})
        assert isinstance(detect_control_plane(config), expected)

    def test_auto_prefers_hyprland(self, config, monkeypatch):
        config = config.model_copy(update={"compositor": "auto"})
        monkeypatch.setenv("HYPRLAND_INSTANCE_SIGNATURE", "abc")
        monkeypatch.setenv("SWAYSOCK", "/run/sway.sock")
        assert isinstance(detect_control_plane(config), HyprlandControlPlane)

    def test_auto_uses_sway_socket(self, config, monkeypatch):
        config = config.model_copy(update={"compositor": "auto"})
        monkeypatch.delenv("HYPRLAND_INSTANCE_SIGNATURE", raising=False)
        monkeypatch.setenv("SWAYSOCK", "/run/sway.sock")
        assert isinstance(detect_control_plane(config), SwayControlPlane)

    def test_auto_falls_back_to_null(self, config, monkeypatch):
        config = config.model_copy(update={"compositor": "auto"})
        for var in ("HYPRLAND_INSTANCE_SIGNATURE", "SWAYSOCK", "I3SOCK"):
            monkeypatch.delenv(var, raising=False)
        assert isinstance(detect_control_plane(config), NullControlPlane)
