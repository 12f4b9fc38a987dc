"""Argument parsing functionality for nextup."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="nextup",
        description=(
            "nextup - Upgrade Next.js and apply the codemods the upgrade needs"
        ),
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="action", required=True)

    upgrade = subparsers.add_parser(
        "upgrade",
        help="Upgrade Next.js to a version, dist-tag or range",
    )
    upgrade.add_argument("revision",
                         help='NPM dist-tag, exact version or range (default: "latest")',
                         nargs="?",
                         default=None)
    upgrade.add_argument("--verbose",
                         dest="VERBOSE",
                         help="Show package manager and codemod output.",
                         action="store_true")
    upgrade.add_argument("-y", "--yes",
                         dest="YES",
                         help="Do not prompt; apply every applicable codemod.",
                         action="store_true")
    upgrade.add_argument("-d", "--directory",
                         dest="DIRECTORY",
                         help="Project directory containing package.json (default: current directory)",
                         action="store",
                         type=str,
                         default=".")
    upgrade.add_argument("-c", "--config",
                         dest="CONFIG",
                         help="Path to configuration file (YAML)",
                         action="store",
                         type=str)
    upgrade.add_argument("--registry",
                         dest="REGISTRY",
                         help="npm registry base URL",
                         action="store",
                         type=str)
    upgrade.add_argument("--loglevel",
                         dest="LOG_LEVEL",
                         help="Set the logging level",
                         action="store",
                         type=str.upper,
                         choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                         default=None)
    upgrade.add_argument("--logfile",
                         dest="LOG_FILE",
                         help="Log output file",
                         action="store",
                         type=str)
    upgrade.add_argument("--error-on-warnings",
                         dest="ERROR_ON_WARNINGS",
                         help="Exit with a non-zero status code if installation or a codemod failed.",
                         action="store_true")

    return parser.parse_args(argv)
