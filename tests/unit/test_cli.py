"""Unit tests for CLI argument parsing and command output."""
from __future__ import annotations

import argparse
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from cipherlend.cli import _run, build_parser

SCENARIO = Path(__file__).resolve().parents[2] / "scenarios" / "borrow_and_repay.yaml"


class TestBuildParser:
    def test_reserves_command(self) -> None:
        args = build_parser().parse_args(["reserves"])
        assert args.command == "reserves"

    def test_prices_command(self) -> None:
        args = build_parser().parse_args(["prices"])
        assert args.command == "prices"

    def test_simulate_command(self) -> None:
        args = build_parser().parse_args(["simulate", "s.yaml"])
        assert args.command == "simulate"
        assert args.scenario == "s.yaml"
        assert args.live_prices is False

    def test_simulate_live_prices(self) -> None:
        args = build_parser().parse_args(["simulate", "s.yaml", "--live-prices"])
        assert args.live_prices is True

    def test_simulate_requires_scenario(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["simulate"])

    def test_config_flag(self) -> None:
        args = build_parser().parse_args(["--config", "/tmp/c.yaml", "reserves"])
        assert args.config == "/tmp/c.yaml"

    def test_log_level_flag(self) -> None:
        args = build_parser().parse_args(["--log-level", "DEBUG", "reserves"])
        assert args.log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "LOUD", "reserves"])

    def test_no_command(self) -> None:
        args = build_parser().parse_args([])
        assert args.command is None


def _args(config: Path, *argv: str) -> argparse.Namespace:
    return build_parser().parse_args(["--config", str(config), *argv])


class TestRun:
    @pytest.mark.asyncio
    async def test_reserves_lists_each_token(
        self, sample_yaml_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        await _run(_args(sample_yaml_path, "reserves"))
        out = capsys.readouterr().out
        assert "SYMBOL" in out
        assert "cWETH" in out
        assert "cUSDC" in out

    @pytest.mark.asyncio
    async def test_prices_static(
        self, sample_yaml_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        await _run(_args(sample_yaml_path, "prices"))
        out = capsys.readouterr().out
        assert "$2,000.0000" in out
        assert "$1.0000" in out

    @pytest.mark.asyncio
    async def test_simulate_success(
        self, sample_yaml_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        await _run(_args(sample_yaml_path, "simulate", str(SCENARIO)))
        out = capsys.readouterr().out
        assert "Scenario: borrow-and-repay" in out
        assert "FAILED" not in out

    @pytest.mark.asyncio
    async def test_simulate_failure_exits_nonzero(
        self, sample_yaml_path: Path, tmp_path: Path
    ) -> None:
        scenario = tmp_path / "bad.yaml"
        scenario.write_text(
            "steps:\n"
            "  - {action: borrow, user: '0x3000000000000000000000000000000000000001',"
            " token: cUSDC, amount: 1}\n"
        )
        with pytest.raises(SystemExit) as exc:
            await _run(_args(sample_yaml_path, "simulate", str(scenario)))
        assert exc.value.code == 1

    @pytest.mark.asyncio
    async def test_simulate_live_prices_refreshes_first(
        self, sample_yaml_path: Path
    ) -> None:
        with patch(
            "cipherlend.cli.ProtocolStack.refresh_prices", new=AsyncMock(return_value={})
        ) as refresh:
            await _run(_args(sample_yaml_path, "simulate", str(SCENARIO), "--live-prices"))
        refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_config(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            await _run(_args(tmp_path / "missing.yaml", "reserves"))
