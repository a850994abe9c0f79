"""Unit tests for CLI argument parsing."""
from __future__ import annotations

import pytest

from ltv_watch.cli import build_parser


class TestBuildParser:
    def test_run_command_default_interval(self) -> None:
        args = build_parser().parse_args(["run"])
        assert args.command == "run"
        assert args.interval is None

    def test_run_command_custom_interval(self) -> None:
        args = build_parser().parse_args(["run", "3"])
        assert args.interval == 3

    def test_sweep_and_markets(self) -> None:
        parser = build_parser()
        assert parser.parse_args(["sweep"]).command == "sweep"
        assert parser.parse_args(["markets"]).command == "markets"

    def test_add_wallet(self) -> None:
        args = build_parser().parse_args(["add-wallet", "42", "0xabc"])
        assert args.command == "add-wallet"
        assert args.chat_id == "42"
        assert args.address == "0xabc"

    def test_wallets(self) -> None:
        args = build_parser().parse_args(["wallets", "42"])
        assert (args.command, args.chat_id) == ("wallets", "42")

    def test_check_with_protocol(self) -> None:
        args = build_parser().parse_args(["check", "42", "--protocol", "aave"])
        assert args.protocol == "aave"

    def test_refresh_without_protocol(self) -> None:
        args = build_parser().parse_args(["refresh", "42"])
        assert args.protocol is None

    def test_set_threshold(self) -> None:
        args = build_parser().parse_args(["set-threshold", "42", "kamino", "danger", "1.2"])
        assert (args.protocol, args.kind, args.value) == ("kamino", "danger", "1.2")

    def test_set_threshold_rejects_unknown_kind(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["set-threshold", "42", "kamino", "panic", "1.2"])

    def test_config_flag(self) -> None:
        args = build_parser().parse_args(["--config", "/tmp/c.yaml", "sweep"])
        assert args.config == "/tmp/c.yaml"

    def test_log_level_flag(self) -> None:
        args = build_parser().parse_args(["--log-level", "DEBUG", "sweep"])
        assert args.log_level == "DEBUG"

    def test_no_command(self) -> None:
        args = build_parser().parse_args([])
        assert args.command is None
