"""
Tests for the command line entry point.

Dependencies: pytest, unittest.mock, job_breaker.cli
System role: Process boundary validation
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from job_breaker.cli import build_parser, main, resolve_settings
from job_breaker.configs.breaker import BreakerSettings, RepeatMode
from job_breaker.core.models import RunOutcome


@pytest.fixture
def cli_env():
    with patch("job_breaker.cli.load_dotenv"), patch(
        "job_breaker.cli.configure_logging"
    ) as configure, patch("job_breaker.cli.JobBreaker") as breaker_cls:
        yield configure, breaker_cls


def _outcome(status):
    return RunOutcome(job_id="job-1", exit_status=status)


class TestResolveSettings:
    """Test suite for resolve_settings."""

    def test_flags_override_environment(self):
        """
        Test command line values win over environment values.

        Arrange: Environment settings with a queue and a job document
        Act: Resolve with --queue, --command and replication flags
        Assert: Flag values applied, environment job source replaced
        """
        # Arrange
        base = BreakerSettings(queue_name="env-queue", job_document='{"tasks": []}')
        args = build_parser().parse_args(
            ["--queue", "cli-queue", "--command", "gen", "--repeat", "2", "--repeat-mode", "inline"]
        )

        # Act
        settings = resolve_settings(args, base)

        # Assert
        assert settings.queue_name == "cli-queue"
        assert settings.command == "gen"
        assert settings.job_document is None
        assert settings.repeat_count == 2
        assert settings.repeat_mode is RepeatMode.INLINE
        assert settings.job_source() == "command"

    def test_environment_kept_without_flags(self):
        """Test unspecified flags leave environment values alone."""
        base = BreakerSettings(queue_name="env-queue", dry_run=True)

        settings = resolve_settings(build_parser().parse_args([]), base)

        assert settings.queue_name == "env-queue"
        assert settings.dry_run is True

    def test_preamble_json(self):
        """Test --preamble is parsed as a JSON mapping."""
        args = build_parser().parse_args(["--preamble", '{"EZQ": {"priority": 1}}'])

        settings = resolve_settings(args, BreakerSettings())

        assert settings.preamble == {"EZQ": {"priority": 1}}

    def test_job_file_path(self):
        """Test --job-file becomes a path."""
        args = build_parser().parse_args(["--job-file", "job.json"])

        assert resolve_settings(args, BreakerSettings()).job_file == Path("job.json")

    def test_invalid_preamble(self):
        """Test malformed --preamble JSON is rejected."""
        args = build_parser().parse_args(["--preamble", "{nope"])

        with pytest.raises(ValueError, match="--preamble"):
            resolve_settings(args, BreakerSettings())

    def test_repeat_without_mode(self):
        """Test --repeat without --repeat-mode fails validation."""
        args = build_parser().parse_args(["--repeat", "1"])

        with pytest.raises(ValueError):
            resolve_settings(args, BreakerSettings())


class TestMain:
    """Test suite for main."""

    def test_exits_with_run_status(self, cli_env):
        """
        Test the process exits with the run outcome's status.

        Arrange: JobBreaker returning status 2
        Act: Run main
        Assert: SystemExit(2), breaker built from flags
        """
        # Arrange
        _, breaker_cls = cli_env
        breaker_cls.return_value.run.return_value = _outcome(2)

        # Act
        with pytest.raises(SystemExit) as exc_info:
            main(["--job-document", '{"tasks": []}', "--queue", "q"])

        # Assert
        assert exc_info.value.code == 2
        settings = breaker_cls.call_args.args[0]
        assert settings.queue_name == "q"

    def test_log_level_flag(self, cli_env):
        """Test --log-level is passed to logging configuration."""
        configure, breaker_cls = cli_env
        breaker_cls.return_value.run.return_value = _outcome(0)

        with pytest.raises(SystemExit):
            main(["--command", "gen", "--log-level", "DEBUG"])

        configure.assert_called_once_with("DEBUG")

    def test_invalid_configuration_exits_1(self, cli_env):
        """Test configuration errors exit 1 without running."""
        _, breaker_cls = cli_env

        with pytest.raises(SystemExit) as exc_info:
            main(["--command", "gen", "--repeat", "3"])

        assert exc_info.value.code == 1
        breaker_cls.assert_not_called()

    def test_interrupt_exits_130(self, cli_env):
        """Test an interrupted run exits 130."""
        _, breaker_cls = cli_env
        breaker_cls.return_value.run.side_effect = KeyboardInterrupt

        with pytest.raises(SystemExit) as exc_info:
            main(["--command", "gen"])

        assert exc_info.value.code == 130

    def test_source_flags_mutually_exclusive(self, cli_env):
        """Test argparse rejects two job sources."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--command", "gen", "--job-file", "job.json"])

        assert exc_info.value.code == 2
