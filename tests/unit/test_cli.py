"""Unit tests for the kubealert click CLI."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from kubealert.cli import cli
from kubealert.models.resources import ResourceKind


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_kinds_lists_every_supported_kind(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["kinds"])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert len(lines) == len(ResourceKind)
    assert any(line.startswith("node") and line.rstrip().endswith("cluster") for line in lines)
    assert any(line.startswith("pod") and line.rstrip().endswith("namespaced") for line in lines)


def test_run_applies_overrides(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("KUBEALERT_RESOURCES", raising=False)
    fake_main = AsyncMock()
    with patch("kubealert.app.main", fake_main):
        result = runner.invoke(cli, ["run", "--workers", "4", "--namespace", "shop", "--log-level", "debug"])
    assert result.exit_code == 0, result.output
    config = fake_main.call_args.args[0]
    assert config.controller.workers == 4
    assert config.watch.namespace == "shop"
    assert config.log.level == "debug"


def test_run_reports_bad_environment_as_usage_error(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KUBEALERT_RESOURCES", "pod,configmap")
    result = runner.invoke(cli, ["run"])
    assert result.exit_code == 2
    assert "configmap" in result.output


def test_run_rejects_out_of_range_workers(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["run", "--workers", "99"])
    assert result.exit_code == 2
