"""Unit tests for the CLI — Typer command registration and behaviour."""

from __future__ import annotations

import os

import pytest
from typer.testing import CliRunner

from jabbersink.cli.app import app
from jabbersink.config import SinkSettings

runner = CliRunner()


@pytest.fixture
def env(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("JABBERSINK_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("JABBERSINK_HOSTNAME", "jabber.example.org")
    monkeypatch.setenv("JABBERSINK_USERNAME", "logger")
    monkeypatch.setenv("JABBERSINK_PASSWORD", "s3cret")
    monkeypatch.setenv("JABBERSINK_RECIPIENTS", "ops@example.org")


@pytest.fixture
def wired_transport(monkeypatch, transport):
    """Make settings-built dispatchers use the recording transport."""
    monkeypatch.setattr(
        SinkSettings, "make_transport", lambda self, debug: transport
    )
    return transport


class TestCliApp:
    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "check" in result.output
        assert "send" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()


class TestCheckCommand:
    def test_complete_configuration(self, env):
        result = runner.invoke(app, ["check"])
        assert result.exit_code == 0
        assert "jabber.example.org" in result.output
        assert "s3cret" not in result.output
        assert "Configuration complete" in result.output

    def test_incomplete_configuration(self, env, monkeypatch):
        monkeypatch.delenv("JABBERSINK_RECIPIENTS")
        monkeypatch.delenv("JABBERSINK_PASSWORD")
        result = runner.invoke(app, ["check"])
        assert result.exit_code == 1
        assert "no recipients configured" in result.output
        assert "login password" in result.output


class TestSendCommand:
    def test_sends_each_message(self, env, wired_transport):
        result = runner.invoke(app, ["send", "first", "second"])
        assert result.exit_code == 0, result.output
        assert [body for _, body in wired_transport.sent] == ["first\n", "second\n"]
        assert "2/2 message(s) accepted" in result.output

    def test_manual_buffer_sends_once(self, env, wired_transport):
        result = runner.invoke(
            app, ["send", "--buffer", "-", "--no-newline", "A", "B"]
        )
        assert result.exit_code == 0, result.output
        assert wired_transport.sent == [("ops@example.org", "AB")]

    def test_recipient_override(self, env, wired_transport):
        result = runner.invoke(app, ["send", "--to", "a@x", "--to", "b@x", "hi"])
        assert result.exit_code == 0, result.output
        assert [r for r, _ in wired_transport.sent] == ["a@x", "b@x"]

    def test_level_below_minimum_is_skipped(self, env, wired_transport, monkeypatch):
        monkeypatch.setenv("JABBERSINK_MIN_LEVEL", "error")
        result = runner.invoke(app, ["send", "--level", "info", "quiet"])
        assert result.exit_code == 0, result.output
        assert wired_transport.calls == []
        assert "0/1 message(s) accepted" in result.output

    def test_connect_failure_exits_nonzero(self, env, wired_transport):
        wired_transport.connect_ok = False
        result = runner.invoke(app, ["send", "lost"])
        assert result.exit_code == 1

    def test_missing_configuration(self, env, wired_transport, monkeypatch):
        monkeypatch.delenv("JABBERSINK_HOSTNAME")
        result = runner.invoke(app, ["send", "x"])
        assert result.exit_code == 1
        assert "Cannot create sink" in result.output

    def test_invalid_level(self, env, wired_transport):
        result = runner.invoke(app, ["send", "--level", "chatty", "x"])
        assert result.exit_code == 2
