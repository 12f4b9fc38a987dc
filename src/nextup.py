"""nextup - upgrade Next.js and apply the codemods the upgrade needs.

    Returns:
        int: Exit code
"""
import logging
import os
import sys

from rich.console import Console

from args import parse_args
from cli_config import configure
from common.logging_utils import configure_logging
from constants import ExitCodes
from upgrade.executor import RunState, UpgradeExecutor, UpgradeReport
from upgrade.prompts import RichPrompter
from upgrade.result import FailureKind

logger = logging.getLogger(__name__)


def exit_code_for(report: UpgradeReport, error_on_warnings: bool = False) -> int:
    """Map a finished run to the process exit code.

    Args:
        report (UpgradeReport): Outcome of the run.
        error_on_warnings (bool): Treat install/codemod failures as errors.

    Returns:
        int: Exit code.
    """
    if report.state == RunState.ABORTED:
        return ExitCodes.ABORTED.value
    if error_on_warnings and report.warnings:
        return ExitCodes.EXIT_WARNINGS.value
    return ExitCodes.SUCCESS.value


def run_upgrade(args, console=None, stdin=None) -> int:
    """Run the upgrade subcommand.

    Args:
        args: Parsed CLI arguments.
        console: Console for user-facing output.
        stdin: Stream checked for interactivity; prompts are skipped when it is not a TTY.

    Returns:
        int: Exit code.
    """
    configure(args)
    console = console or Console()
    stdin = stdin if stdin is not None else sys.stdin
    interactive = not args.YES and stdin is not None and stdin.isatty()
    prompter = RichPrompter(console) if interactive else None

    project_dir = os.path.abspath(args.DIRECTORY)
    executor = UpgradeExecutor(
        project_dir,
        prompter=prompter,
        verbose=args.VERBOSE,
        console=console,
    )
    report = executor.run(args.revision)

    if report.state == RunState.ABORTED:
        if report.failure.kind == FailureKind.CANCELLED:
            logger.warning("Upgrade cancelled; nothing was changed.")
        else:
            logger.error("%s", report.failure.message)
    for warning in report.warnings:
        logger.warning("%s", warning.message)
    return exit_code_for(report, args.ERROR_ON_WARNINGS)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, args.LOG_FILE)

    if args.action == "upgrade":
        sys.exit(run_upgrade(args))
    sys.exit(ExitCodes.ABORTED.value)


if __name__ == "__main__":
    main()
