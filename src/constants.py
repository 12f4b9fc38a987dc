"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    ABORTED = 1
    EXIT_WARNINGS = 3


class PackageManagers(Enum):
    """Package managers the upgrade can install with.

    Args:
        Enum (string): Package manager binary names.
    """

    NPM = "npm"
    PNPM = "pnpm"
    YARN = "yarn"
    BUN = "bun"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    Values may be overridden at startup by cli_config.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org/"
    PACKAGE_JSON_FILE = "package.json"
    NODE_MODULES_DIR = "node_modules"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_CACHE_TTL_SEC = 300
    PEER_RESOLUTION_MAX_WORKERS = 4

    # Environment
    ENV_CONFIG = "NEXTUP_CONFIG"
    ENV_LOG_LEVEL = "NEXTUP_LOG_LEVEL"
    ENV_REGISTRY_URL = "NEXTUP_REGISTRY_URL"
    ENV_TRANSFORM_COMMAND = "NEXTUP_TRANSFORM_COMMAND"
    ENV_USER_AGENT = "npm_config_user_agent"

    # Framework and its peers
    FRAMEWORK_PACKAGE = "next"
    DEFAULT_REVISION = "latest"
    PEER_PACKAGE = "react"
    PEER_COMPANIONS = ["react-dom"]
    TYPE_PACKAGES = ["@types/react", "@types/react-dom"]
    PRERELEASE_TYPE_ALIASES = {
        "@types/react": "npm:types-react@rc",
        "@types/react-dom": "npm:types-react-dom@rc",
    }
    PRERELEASE_PEER_PREFIXES = ("19.0.0-canary", "19.0.0-beta", "19.0.0-rc")

    # Turbopack dev-script suggestion
    TURBOPACK_MIN_VERSION = "15.0.0-canary"
    TURBOPACK_FLAG = "--turbo"
    DEV_SCRIPT = "dev"
    DEV_COMMAND = "next dev"

    # External transform runner
    TRANSFORM_COMMAND = ["npx", "--yes", "@next/codemod@latest"]

    MIGRATION_GUIDE_URL = (
        "https://nextjs.org/docs/app/building-your-application/upgrading"
    )
    VERSIONS_URL = "https://www.npmjs.com/package/next?activeTab=versions"
