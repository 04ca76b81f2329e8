"""
Tests for the Typer command line.
"""

from typer.testing import CliRunner

from homebook.cli.app import app

runner = CliRunner()


def test_slots_lists_twelve_hour_times(tmp_path):
    result = runner.invoke(app, ["slots", "--config", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 0
    assert "9:00 AM" in result.output
    assert "7:00 PM" in result.output


def test_invalid_config_exits_cleanly(tmp_path):
    """A bad config file is reported as an error message, not a traceback."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("window:\n  open_time: '19:00'\n  close_time: '09:00'\n", encoding="utf-8")

    result = runner.invoke(app, ["services", "--mock", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    assert "Traceback" not in result.output


def test_malformed_yaml_exits_cleanly(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("api: [unclosed\n", encoding="utf-8")

    result = runner.invoke(app, ["slots", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_signup_with_mock_client(tmp_path):
    result = runner.invoke(
        app,
        [
            "signup", "--mock",
            "--config", str(tmp_path / "missing.yaml"),
            "--username", "maria",
            "--email", "maria@example.com",
            "--password", "pw",
            "--confirm-password", "pw",
        ],
    )

    assert result.exit_code == 0
    assert "Account created" in result.output


def test_signup_password_mismatch_fails(tmp_path):
    result = runner.invoke(
        app,
        [
            "signup", "--mock",
            "--config", str(tmp_path / "missing.yaml"),
            "--username", "maria",
            "--email", "maria@example.com",
            "--password", "one",
            "--confirm-password", "two",
        ],
    )

    assert result.exit_code == 1
    assert "Passwords do not match" in result.output


def test_reset_password_with_mock_client(tmp_path):
    result = runner.invoke(
        app,
        [
            "reset-password", "--mock",
            "--config", str(tmp_path / "missing.yaml"),
            "--token", "tok-123",
            "--password", "n3w-pass",
        ],
    )

    assert result.exit_code == 0
    assert "Password reset" in result.output
