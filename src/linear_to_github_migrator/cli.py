"""
Command-line interface for the Linear to GitHub migration tool.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import TYPE_CHECKING

from . import github_utils as ghu
from . import linear
from .config import DEFAULT_DEADLINE_HOURS, DEFAULT_RETRY_INTERVAL_SECONDS, MigrationConfig
from .exceptions import ConfigError, MigrationCancelled
from .migrator import LinearToGitHubMigrator
from .retry import CancellationToken
from .store import StagingStore
from .utils import PassError, setup_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Migrate Linear issues to GitHub. Run 'fetch' until it completes, then 'export'."
    )

    common = argparse.ArgumentParser(add_help=False)
    _ = common.add_argument(
        "--corpus", help="Directory holding the fetched issues and state.json (default: $LINEAR_CORPUS or linear-corpus)"
    )
    _ = common.add_argument(
        "--issue-number", "-n", type=int, help="Only fetch/export the issue with this number (e.g. 42 for ENG-42)"
    )
    _ = common.add_argument(
        "--retry-interval",
        type=float,
        default=DEFAULT_RETRY_INTERVAL_SECONDS,
        help=f"Seconds to wait before retrying a failed page or issue (default: {DEFAULT_RETRY_INTERVAL_SECONDS:g})",
    )
    _ = common.add_argument(
        "--deadline-hours",
        type=float,
        default=DEFAULT_DEADLINE_HOURS,
        help=f"Stop the phase after this many hours, 0 for no limit (default: {DEFAULT_DEADLINE_HOURS:g})",
    )
    _ = common.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="mode", required=True)

    fetch = subparsers.add_parser("fetch", parents=[common], help="Fetch all Linear issues into the corpus")
    _ = fetch.add_argument("--page-size", type=int, help="Issues per Linear query (default: 50)")
    _ = fetch.add_argument("--cursor", help="Linear issue id to resume fetching before, overriding state.json")
    _ = fetch.add_argument(
        "--linear-pass-token", help="Path for Linear API key in pass utility (default: linear/api/key)"
    )

    export = subparsers.add_parser("export", parents=[common], help="Export fetched issues to GitHub")
    _ = export.add_argument(
        "--github-repo", help="GitHub repository path (owner/repo) (default: $GITHUB_REPOSITORY)"
    )
    _ = export.add_argument(
        "--identity-map", help="JSON file mapping Linear user emails to GitHub handles"
    )
    _ = export.add_argument(
        "--github-pass-token", help="Path for GitHub token in pass utility (default: github/cli/token)"
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> MigrationConfig:
    """Resolve credentials for the selected phase and build the run configuration."""
    linear_api_key: str | None = None
    github_token: str | None = None
    try:
        if args.mode == "fetch":
            linear_api_key = linear.get_api_key(getattr(args, "linear_pass_token", None))
        else:
            github_token = ghu.get_token(getattr(args, "github_pass_token", None))
    except PassError as e:
        msg = f"Cannot read credentials: {e}"
        raise ConfigError(msg) from e
    return MigrationConfig.from_args(args, linear_api_key=linear_api_key, github_token=github_token)


def install_interrupt_handler(token: CancellationToken) -> None:
    """Cancel ``token`` on SIGINT/SIGTERM; the current remote call is allowed to finish."""

    def _handle(signum: int, _frame: FrameType | None) -> None:
        logger.warning(f"Received {signal.Signals(signum).name}, stopping after the current step")
        token.cancel()

    _ = signal.signal(signal.SIGINT, _handle)
    _ = signal.signal(signal.SIGTERM, _handle)


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    # Setup logging
    verbose: bool = getattr(args, "verbose", False)
    setup_logging(verbose=verbose)

    try:
        config = build_config(args)
        if config.mode == "export":
            config.require_destination()

        token = CancellationToken.with_timeout(config.deadline_seconds)
        install_interrupt_handler(token)

        store = StagingStore.open(config.corpus_dir)
        migrator = LinearToGitHubMigrator(config, store, token=token)
        stats = migrator.run()
        logger.info(f"Done: {stats}")

    except ConfigError:
        logger.exception("Invalid configuration")
        sys.exit(EXIT_CONFIG_ERROR)
    except MigrationCancelled as e:
        logger.warning(f"Migration stopped ({e}); run the same command again to resume")
        sys.exit(EXIT_INTERRUPTED)
    except Exception:
        logger.exception("Migration failed")
        sys.exit(EXIT_ERROR)
