import os
from pathlib import Path
from typing import Optional

import yaml

from reviewist_core.errors import ConfigError

DEFAULT_CONFIG: dict = {
    "github_base": "https://api.github.com/",
    "todoist_base": "https://api.todoist.com/",
    "database_url": None,
    "concurrency": 10,  # max simultaneous pull request lookups
    "request_timeout": 30,  # seconds, applied to every outbound request
    "task_due": "today",
    "failure_wait_seconds": None,  # seconds to pause after a failed cycle; None for no pause
    "store_workers": 2,
}

# Environment variables that override a config key when set.
_ENV_OVERRIDES = {
    "DATABASE_URL": "database_url",
    "GITHUB_BASE_URL": "github_base",
    "TODOIST_BASE_URL": "todoist_base",
}

_REQUIRED = {
    "github_token": "GITHUB_TOKEN",
    "todoist_token": "TODOIST_TOKEN",
    "database_url": "DATABASE_URL",
}


def load_config(config_path: str = ".reviewist.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .reviewist.yml in the current directory
      3. CLI argument overrides
      4. Deployment values from the environment
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    for env_name, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["todoist_token"] = os.environ.get("TODOIST_TOKEN")

    for key in ("github_base", "todoist_base"):
        if not config[key].endswith("/"):
            config[key] += "/"

    return config


def validate_config(config: dict) -> None:
    """Raise ConfigError naming every required value that is missing."""
    missing = [env for key, env in _REQUIRED.items() if not config.get(key)]
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}")


def database_path(database_url: str) -> str:
    """
    Turn a DATABASE_URL into a filesystem path for sqlite3.

    Accepts ``sqlite:///relative/or/abs``, ``sqlite://path`` and bare paths.
    """
    for prefix in ("sqlite:///", "sqlite://"):
        if database_url.startswith(prefix):
            return database_url[len(prefix) :] or ":memory:"
    return database_url
