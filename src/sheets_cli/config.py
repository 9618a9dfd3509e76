"""Centralized configuration.

All local files live in the sheets-cli home directory, which is
$SHEETS_CLI_HOME when set and the current working directory otherwise:
    config.env          - SPREADSHEET_ID and other settings
    credentials.json    - Google OAuth client credentials
    token.json          - Google OAuth tokens

This module auto-loads config.env on import, so SPREADSHEET_ID is
available to the rest of the package.
"""

import os
from pathlib import Path

HOME_DIR = Path(os.environ.get("SHEETS_CLI_HOME") or Path.cwd()).expanduser()

ENV_FILE = HOME_DIR / "config.env"
GOOGLE_CREDENTIALS = HOME_DIR / "credentials.json"
GOOGLE_TOKEN = HOME_DIR / "token.json"

SPREADSHEET_ID_VAR = "SPREADSHEET_ID"


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to config.env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            # Remove surrounding quotes
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            # Only set if not already in environment (env vars take precedence)
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


def get_spreadsheet_id() -> str | None:
    """Return the target spreadsheet ID from the environment."""
    return os.environ.get(SPREADSHEET_ID_VAR) or None


def ensure_home_dir() -> Path:
    """Create the home directory if it doesn't exist.

    Returns:
        Path to home directory.
    """
    HOME_DIR.mkdir(parents=True, exist_ok=True)
    return HOME_DIR


def get_credential_status() -> dict:
    """Get status of all configured files and settings.

    Returns:
        Dictionary with configuration status.
    """
    return {
        "home_dir": str(HOME_DIR),
        "env_file": ENV_FILE.exists(),
        "spreadsheet_id": get_spreadsheet_id(),
        "google": {
            "credentials": GOOGLE_CREDENTIALS.exists(),
            "token": GOOGLE_TOKEN.exists(),
        },
    }


# Auto-load config.env from the home directory on import
_loaded = _load_env_file(ENV_FILE)
