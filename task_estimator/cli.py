"""Task Estimator - command-line interface.

Usage:
    task-estimator estimate "Write quarterly report" --project work
    task-estimator status
    task-estimator clean-cache
    task-estimator [command] --help
"""

import argparse
import json
import logging
import sys
import uuid
from pathlib import Path

from .config import load_config
from .estimator import Estimator
from .exceptions import ConfigError
from .models import Task
from .urgency import calculate_urgency

# Exit codes
EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_CONFIG_ERROR = 2


class CLIError(Exception):
    """Base exception for CLI errors."""

    def __init__(self, message: str, exit_code: int = EXIT_GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigurationError(CLIError):
    """Configuration error."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_CONFIG_ERROR)


class TaskEstimatorCLI:
    """Main CLI class."""

    def __init__(self):
        self.verbose = False
        self.config_path: Path | None = None
        self.logger = logging.getLogger(__name__)

    def log(self, message: str):
        """Log a message."""
        self.logger.info(message)

    def log_error(self, message: str):
        """Log an error message."""
        self.logger.error(message)

    def _load_config(self):
        """Load estimator configuration."""
        try:
            return load_config(self.config_path)
        except ConfigError as e:
            raise ConfigurationError(str(e))

    def _create_estimator(self) -> Estimator:
        return Estimator(self._load_config())

    def _report_unexpected(self, prefix: str, error: Exception) -> int:
        if self.verbose:
            import traceback

            traceback.print_exc()
        self.log_error(f"{prefix}: {str(error)}")
        return EXIT_GENERAL_ERROR

    def cmd_estimate(self, args) -> int:
        """Estimate how long a task will take."""
        try:
            task = Task(
                uuid=args.uuid or str(uuid.uuid4()),
                description=args.description,
                project=args.project or "",
                priority=args.priority or "",
            )

            with self._create_estimator() as estimator:
                estimate = estimator.estimate_task(task)
                suggestions = estimator.suggest_improvements(task)

            if args.json:
                print(json.dumps(estimate.to_dict(), indent=2))
                return EXIT_SUCCESS

            self.log(f"Estimate:   {estimate.hours:.2f} hours")
            self.log(f"Source:     {estimate.source.value}")
            self.log(f"Confidence: {estimate.confidence:.0%}")
            self.log(f"Reason:     {estimate.reason}")
            self.log(f"Urgency:    {calculate_urgency(task):.1f}")

            if suggestions:
                self.log("\nSuggestions")
                for suggestion in suggestions:
                    self.log(f"  - {suggestion}")

            return EXIT_SUCCESS

        except CLIError as e:
            self.log_error(str(e))
            return e.exit_code
        except Exception as e:
            return self._report_unexpected("Estimation failed", e)

    def cmd_status(self, args) -> int:
        """Display auto-sync configuration and state."""
        try:
            config = self._load_config()

            with Estimator(config) as estimator:
                status = estimator.sync_status()

            self.log("=" * 50)
            self.log("Task Estimator Status")
            self.log("=" * 50 + "\n")

            self.log("Auto-sync")
            self.log("-" * 50)
            self.log(f"Enabled:   {'yes' if status['enabled'] else 'no'}")
            self.log(f"Available: {'yes' if status['available'] else 'no (needs time database and timewarrior)'}")
            self.log(f"Interval:  {status['interval_hours']:g} hours")
            self.log(f"Last sync: {status['last_sync'] or 'never'}")
            self.log(f"Next sync: {status['next_sync_due'] or 'on next estimate'}")

            self.log("\nAI Estimates")
            self.log("-" * 50)
            self.log(f"Enabled:   {'yes' if config.ai_active else 'no'}")
            if config.ai_active:
                self.log(f"Provider:  {config.ai_provider}")
                self.log(f"Model:     {config.ai_model or 'provider default'}")
                self.log(f"Cache:     {config.resolved_cache_path if config.cache_ai_estimates else 'disabled'}")

            return EXIT_SUCCESS

        except CLIError as e:
            self.log_error(str(e))
            return e.exit_code
        except Exception as e:
            return self._report_unexpected("Status failed", e)

    def cmd_clean_cache(self, args) -> int:
        """Remove expired AI estimates from the cache."""
        try:
            with self._create_estimator() as estimator:
                if estimator.cache is None:
                    self.log("AI estimate cache is not enabled")
                    return EXIT_SUCCESS
                removed = estimator.clean_cache()

            self.log(f"Removed {removed} expired cache entries")
            return EXIT_SUCCESS

        except CLIError as e:
            self.log_error(str(e))
            return e.exit_code
        except Exception as e:
            return self._report_unexpected("Cache cleanup failed", e)

    def build_parser(self) -> argparse.ArgumentParser:
        """Build the argument parser."""
        parser = argparse.ArgumentParser(
            prog="task-estimator",
            description="Task Estimator - multi-source time estimates for tasks",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  task-estimator estimate "Review pull request"          # Estimate a task
  task-estimator estimate "Plan migration" -p infra --json
  task-estimator status                                  # Show auto-sync status
  task-estimator clean-cache                             # Drop expired AI estimates
            """,
        )

        parser.add_argument(
            "--config",
            "-c",
            type=str,
            help="Path to estimator configuration TOML file",
        )
        parser.add_argument(
            "--verbose",
            "-v",
            action="store_true",
            help="Show debug output and stack traces on error",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Command to run"
        )

        # estimate
        estimate_parser = subparsers.add_parser(
            "estimate", help="Estimate how long a task will take"
        )
        estimate_parser.add_argument(
            "description", type=str, help="Task description"
        )
        estimate_parser.add_argument(
            "--project", "-p", type=str, help="Task project"
        )
        estimate_parser.add_argument(
            "--priority",
            choices=["H", "M", "L"],
            help="Task priority",
        )
        estimate_parser.add_argument(
            "--uuid",
            type=str,
            help="Task UUID (enables tracked-time estimates)",
        )
        estimate_parser.add_argument(
            "--json",
            action="store_true",
            help="Print the estimate as JSON",
        )

        # status
        subparsers.add_parser(
            "status", help="Show auto-sync and AI configuration"
        )

        # clean-cache
        subparsers.add_parser(
            "clean-cache", help="Remove expired AI estimates from the cache"
        )

        return parser

    def run(self, argv=None) -> int:
        """Main entry point."""
        parser = self.build_parser()
        args = parser.parse_args(argv)

        self.verbose = args.verbose
        if args.config:
            self.config_path = Path(args.config).expanduser()

        # Configure logging
        log_level = logging.DEBUG if self.verbose else logging.INFO
        logging.basicConfig(
            level=log_level,
            format="%(message)s",
            handlers=[logging.StreamHandler(stream=sys.stdout)],
        )

        # Dispatch to command handler
        if args.command == "estimate":
            return self.cmd_estimate(args)
        elif args.command == "status":
            return self.cmd_status(args)
        elif args.command == "clean-cache":
            return self.cmd_clean_cache(args)
        else:
            parser.print_help()
            return EXIT_SUCCESS


def main():
    """Command-line entry point."""
    cli = TaskEstimatorCLI()
    exit_code = cli.run()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
