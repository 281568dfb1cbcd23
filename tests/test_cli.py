"""
Tests for CLI module.
"""

import logging
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from linear_to_github_migrator.cli import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_INTERRUPTED,
    build_config,
    main,
    parse_arguments,
)
from linear_to_github_migrator.config import MigrationConfig
from linear_to_github_migrator.exceptions import ConfigError, MigrationCancelled, StagingError
from linear_to_github_migrator.migrator import MigrationStats
from linear_to_github_migrator.utils import PassError, setup_logging


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """CI runners export GITHUB_REPOSITORY; keep it from leaking into the configuration."""
    monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)
    monkeypatch.delenv("LINEAR_CORPUS", raising=False)


@pytest.mark.unit
class TestParseArguments:
    def test_fetch_defaults(self) -> None:
        args = parse_arguments(["fetch"])

        assert args.mode == "fetch"
        assert args.corpus is None
        assert args.issue_number is None
        assert args.page_size is None
        assert args.retry_interval == 300.0
        assert args.deadline_hours == 24.0
        assert args.verbose is False

    def test_export_options(self) -> None:
        args = parse_arguments(
            ["export", "--github-repo", "acme/app", "--identity-map", "ids.json", "-n", "42", "-v", "--corpus", "c"]
        )

        assert args.mode == "export"
        assert args.github_repo == "acme/app"
        assert args.identity_map == "ids.json"
        assert args.issue_number == 42
        assert args.verbose is True
        assert args.corpus == "c"

    def test_mode_is_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_arguments([])

    def test_fetch_rejects_export_options(self) -> None:
        with pytest.raises(SystemExit):
            parse_arguments(["fetch", "--github-repo", "acme/app"])


@pytest.mark.unit
class TestBuildConfig:
    @patch("linear_to_github_migrator.cli.linear.get_api_key", return_value="lin_api_123")
    def test_fetch_config(self, mock_key: MagicMock) -> None:
        config = build_config(parse_arguments(["fetch", "--page-size", "10", "--cursor", "id-eng-9", "--corpus", "c"]))

        assert config.mode == "fetch"
        assert config.corpus_dir == Path("c")
        assert config.page_size == 10
        assert config.cursor == "id-eng-9"
        assert config.linear_api_key == "lin_api_123"
        assert config.github_token is None
        mock_key.assert_called_once_with(None)

    @patch("linear_to_github_migrator.cli.ghu.get_token", return_value="gh-token")
    def test_export_config(self, mock_token: MagicMock) -> None:
        args = parse_arguments(["export", "--github-repo", "acme/app", "--github-pass-token", "github/other"])

        config = build_config(args)

        assert config.github_org == "acme"
        assert config.github_repo == "app"
        assert config.github_token == "gh-token"
        assert config.linear_api_key is None
        mock_token.assert_called_once_with("github/other")

    @patch("linear_to_github_migrator.cli.ghu.get_token", return_value="gh-token")
    def test_environment_fallbacks(self, _mock_token: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_REPOSITORY", "acme/app")
        monkeypatch.setenv("LINEAR_CORPUS", "/data/linear")

        config = build_config(parse_arguments(["export"]))

        assert config.github_repo_path == "acme/app"
        assert config.corpus_dir == Path("/data/linear")

    @patch("linear_to_github_migrator.cli.ghu.get_token", return_value="gh-token")
    def test_invalid_repo_path(self, _mock_token: MagicMock) -> None:
        with pytest.raises(ConfigError, match="Expected format: 'owner/repository'"):
            build_config(parse_arguments(["export", "--github-repo", "just-owner"]))

    @patch("linear_to_github_migrator.cli.linear.get_api_key", return_value="k")
    def test_non_positive_page_size(self, _mock_key: MagicMock) -> None:
        with pytest.raises(ConfigError, match="Page size must be positive"):
            build_config(parse_arguments(["fetch", "--page-size", "-1"]))

    @patch("linear_to_github_migrator.cli.linear.get_api_key", return_value="k")
    def test_zero_deadline_disables_it(self, _mock_key: MagicMock) -> None:
        config = build_config(parse_arguments(["fetch", "--deadline-hours", "0"]))

        assert config.deadline_seconds is None

    @patch("linear_to_github_migrator.cli.linear.get_api_key", side_effect=PassError("pass not installed"))
    def test_credential_error_is_config_error(self, _mock_key: MagicMock) -> None:
        with pytest.raises(ConfigError, match="pass not installed"):
            build_config(parse_arguments(["fetch"]))


@pytest.mark.unit
class TestMigrationConfig:
    def test_matches_issue_number(self) -> None:
        config = MigrationConfig(mode="export", corpus_dir=Path("c"), issue_number=4)

        assert config.matches_issue_number("ENG-4")
        assert not config.matches_issue_number("ENG-14")
        assert not config.matches_issue_number("ENG-40")

    def test_no_filter_matches_everything(self) -> None:
        assert MigrationConfig(mode="export", corpus_dir=Path("c")).matches_issue_number("ENG-1")

    def test_require_destination(self) -> None:
        with pytest.raises(ConfigError, match="GitHub repository is required"):
            MigrationConfig(mode="export", corpus_dir=Path("c"), github_org="acme").require_destination()


@pytest.mark.unit
class TestMain:
    """Exit codes of the entry point."""

    def _run(self, argv: list[str], **migrator_behaviour: Any) -> tuple[int | None, MagicMock]:
        with (
            patch("linear_to_github_migrator.cli.setup_logging"),
            patch("linear_to_github_migrator.cli.install_interrupt_handler"),
            patch("linear_to_github_migrator.cli.linear.get_api_key", return_value="lin_api_123"),
            patch("linear_to_github_migrator.cli.ghu.get_token", return_value="gh-token"),
            patch("linear_to_github_migrator.cli.LinearToGitHubMigrator") as mock_migrator,
        ):
            mock_instance = MagicMock()
            mock_instance.run.configure_mock(**migrator_behaviour)
            mock_migrator.return_value = mock_instance
            try:
                main(argv)
            except SystemExit as e:
                return e.code, mock_migrator  # type: ignore[return-value]
            return None, mock_migrator

    def test_successful_fetch(self, tmp_path: Path) -> None:
        code, mock_migrator = self._run(["fetch", "--corpus", str(tmp_path)], return_value=MigrationStats())

        assert code is None
        mock_migrator.assert_called_once()
        config = mock_migrator.call_args.args[0]
        assert config.mode == "fetch"
        assert config.corpus_dir == tmp_path
        assert mock_migrator.call_args.kwargs["token"] is not None

    def test_export_without_repository_is_config_error(self, tmp_path: Path) -> None:
        code, mock_migrator = self._run(["export", "--corpus", str(tmp_path)])

        assert code == EXIT_CONFIG_ERROR
        mock_migrator.assert_not_called()

    def test_cancelled_run_exits_130(self, tmp_path: Path) -> None:
        code, _ = self._run(["fetch", "--corpus", str(tmp_path)], side_effect=MigrationCancelled("interrupted"))

        assert code == EXIT_INTERRUPTED

    def test_unexpected_failure_exits_1(self, tmp_path: Path) -> None:
        code, _ = self._run(
            ["export", "--github-repo", "acme/app", "--corpus", str(tmp_path)],
            side_effect=StagingError("Failed to load staged issue ENG-1"),
        )

        assert code == EXIT_ERROR


@pytest.mark.unit
class TestSetupLogging:
    """Test setup_logging levels and handlers."""

    def _reset(self, root_logger: logging.Logger, original_handlers: list[logging.Handler], level: int) -> None:
        for h in root_logger.handlers:
            h.close()
        root_logger.handlers = original_handlers
        root_logger.setLevel(level)

    def test_default_level_is_info(self) -> None:
        root_logger = logging.getLogger()
        original_handlers, original_level = root_logger.handlers[:], root_logger.level
        root_logger.handlers.clear()

        try:
            setup_logging(log_file=None)
            assert root_logger.level == logging.INFO
            assert len(root_logger.handlers) == 1
        finally:
            self._reset(root_logger, original_handlers, original_level)

    def test_verbose_is_debug_with_quiet_urllib3(self) -> None:
        root_logger = logging.getLogger()
        original_handlers, original_level = root_logger.handlers[:], root_logger.level
        root_logger.handlers.clear()

        try:
            setup_logging(verbose=True, log_file=None)
            assert root_logger.level == logging.DEBUG
            assert logging.getLogger("urllib3").level == logging.INFO
        finally:
            self._reset(root_logger, original_handlers, original_level)

    def test_log_file_handler(self, tmp_path: Path) -> None:
        root_logger = logging.getLogger()
        original_handlers, original_level = root_logger.handlers[:], root_logger.level
        root_logger.handlers.clear()
        log_file = tmp_path / "migration.log"

        try:
            setup_logging(log_file=str(log_file))
            logging.getLogger("linear_to_github_migrator").info("hello")
            assert any(isinstance(h, logging.FileHandler) for h in root_logger.handlers)
        finally:
            self._reset(root_logger, original_handlers, original_level)

        assert "hello" in log_file.read_text()
