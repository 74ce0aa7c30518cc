import json
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from pool_feeds.checks.preflight import PreflightError
from pool_feeds.constants import Q96
from pool_feeds.main import app

runner = CliRunner()


def test_price_command():
    result = runner.invoke(app, ["price", str(Q96 * 3)])

    assert result.exit_code == 0
    assert "9000000 (9.000000)" in result.output


def test_price_command_inverted_with_decimals():
    result = runner.invoke(
        app, ["price", str(Q96), "--decimals0", "18", "--decimals1", "18", "--invert"]
    )

    assert result.exit_code == 0
    assert "1000000 (1.000000)" in result.output


def test_price_command_rejects_zero_price():
    result = runner.invoke(app, ["price", "1"])
    assert result.exit_code == 1


def test_show_config_redacts_secrets(monkeypatch):
    monkeypatch.setenv("POOL_FEEDS_PRIVATE_KEY", "0x" + "44" * 32)

    result = runner.invoke(app, ["run", "--network", "coston2", "--show-config"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["network"] == "coston2"
    assert data["private_key"] == "***redacted***"


def test_run_requires_feeds():
    result = runner.invoke(app, ["run", "--network", "coston2"])
    assert result.exit_code != 0


def test_run_exits_nonzero_when_preflight_fails(tmp_path, monkeypatch):
    config = tmp_path / "feeds.toml"
    config.write_text(
        "\n".join(
            [
                'price_recorder_address = "0x' + "12" * 20 + '"',
                "[[feeds]]",
                'alias = "WFLR_USDC"',
                'pool_address = "0x' + "34" * 20 + '"',
                'feed_address = "0x' + "78" * 20 + '"',
                "token0_decimals = 18",
                "token1_decimals = 6",
            ]
        )
    )
    monkeypatch.setenv("POOL_FEEDS_PRIVATE_KEY", "0x" + "44" * 32)
    # --config writes POOL_FEEDS_CONFIG; register it so it is restored afterwards
    monkeypatch.setenv("POOL_FEEDS_CONFIG", "")

    with patch(
        "pool_feeds.main._run_scheduler",
        new=AsyncMock(side_effect=PreflightError("wrong chain")),
    ):
        result = runner.invoke(app, ["run", "--config", str(config), "--max-cycles", "1"])

    assert result.exit_code == 1
