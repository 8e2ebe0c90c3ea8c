"""Configuration management for the eslint-bridge server.

Server configuration is loaded once at start from multiple sources with
precedence:
CLI args > environment variables > .eslintbridgerc > pyproject.toml > defaults

Lint settings are pushed by the editor client at runtime through
``workspace/didChangeConfiguration`` and are parsed separately.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

# tomllib is only available in Python 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
RUN_ON_TYPE = "onType"
RUN_ON_SAVE = "onSave"
RC_FILE = ".eslintbridgerc"
PYPROJECT_SECTION = "eslint-bridge"


@dataclass
class ServerConfig:
    """Process-level configuration of the language server.

    Attributes:
        log_level: Minimum level of log records written to stderr.
        log_file: Optional file receiving a copy of the log.
        exit_delay: Seconds between announcing an exit to the client and exiting.
        languages: Language ids of the documents that get validated.
        probe_filename: File name used to probe a directory after a config change.
        eslint_path: Explicit eslint executable, used when none is found nearby.
    """

    log_level: str = "INFO"
    log_file: str | None = None
    exit_delay: float = 1.0
    languages: list[str] = field(default_factory=lambda: ["javascript", "javascriptreact"])
    probe_filename: str = "___test___.js"
    eslint_path: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if not isinstance(self.log_level, str) or self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        self.log_level = self.log_level.upper()

        if isinstance(self.exit_delay, bool) or not isinstance(self.exit_delay, (int, float)):
            raise ValueError("exit_delay must be a number")
        if self.exit_delay < 0:
            raise ValueError("exit_delay must not be negative")

        if isinstance(self.languages, str):
            self.languages = [lang.strip() for lang in self.languages.split(",") if lang.strip()]
        if not self.languages or not all(isinstance(lang, str) and lang for lang in self.languages):
            raise ValueError("languages must be a non-empty list of language ids")

        if not self.probe_filename or not isinstance(self.probe_filename, str):
            raise ValueError("probe_filename must be a non-empty string")
        if not self.probe_filename.endswith(".js"):
            raise ValueError("probe_filename must end with .js")

    def supports(self, language_id: str) -> bool:
        return language_id in self.languages


@dataclass
class LintSettings:
    """Lint settings pushed by the client under the ``eslint`` key.

    Attributes:
        enable: Whether documents are validated at all.
        run: When to validate, ``onType`` or ``onSave``.
        options: Options handed to the lint engine.
    """

    enable: bool = True
    run: str = RUN_ON_TYPE
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_client(cls, settings: Any) -> LintSettings:
        """Parse the settings object of ``workspace/didChangeConfiguration``.

        Missing or malformed values fall back to the defaults.
        """
        section = settings.get("eslint") if isinstance(settings, dict) else None
        if not isinstance(section, dict):
            return cls()
        run = section.get("run", RUN_ON_TYPE)
        if run not in (RUN_ON_TYPE, RUN_ON_SAVE):
            run = RUN_ON_TYPE
        options = section.get("options")
        return cls(
            enable=bool(section.get("enable", True)),
            run=run,
            options=dict(options) if isinstance(options, dict) else {},
        )

    @property
    def run_on_type(self) -> bool:
        return self.enable and self.run == RUN_ON_TYPE

    @property
    def run_on_save(self) -> bool:
        return self.enable and self.run == RUN_ON_SAVE


def _get_config_field_names() -> set[str]:
    """Get the set of valid configuration field names.

    Returns:
        Set of field names from ServerConfig.
    """
    return {f.name for f in fields(ServerConfig)}


def find_config_file(filename: str = RC_FILE, start_dir: Path | None = None) -> Path | None:
    """Find a configuration file by traversing up the directory tree.

    Args:
        filename: Name of the config file to find.
        start_dir: Directory to start searching from. Defaults to current directory.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        config_path = current / filename
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    with open(path, "rb") as f:
        result: dict[str, Any] = tomllib.load(f)
        return result


def _filter_fields(data: dict[str, Any]) -> dict[str, Any]:
    valid_fields = _get_config_field_names()
    return {k: v for k, v in data.items() if k in valid_fields}


def _load_from_rc(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from a .eslintbridgerc file, or {} if there is none."""
    config_path = find_config_file(RC_FILE, start_dir)
    if config_path is None:
        return {}

    try:
        return _filter_fields(_load_toml_file(config_path))
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def _load_from_pyproject(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from the pyproject.toml [tool.eslint-bridge] section."""
    config_path = find_config_file("pyproject.toml", start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
        section = data.get("tool", {}).get(PYPROJECT_SECTION, {})
        return _filter_fields(section)
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def _load_from_env() -> dict[str, Any]:
    """Load configuration from ESLINT_BRIDGE_* environment variables.

    Returns:
        Dictionary containing configuration from environment variables.

    Raises:
        ValueError: If ESLINT_BRIDGE_EXIT_DELAY is not a number.
    """
    env_mapping = {
        "ESLINT_BRIDGE_LOG_LEVEL": "log_level",
        "ESLINT_BRIDGE_LOG_FILE": "log_file",
        "ESLINT_BRIDGE_EXIT_DELAY": "exit_delay",
        "ESLINT_BRIDGE_LANGUAGES": "languages",
        "ESLINT_BRIDGE_PROBE_FILENAME": "probe_filename",
        "ESLINT_BRIDGE_ESLINT_PATH": "eslint_path",
    }

    result: dict[str, Any] = {}
    for env_var, config_key in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            result[config_key] = value

    if "exit_delay" in result:
        try:
            result["exit_delay"] = float(result["exit_delay"])
        except ValueError as e:
            raise ValueError("ESLINT_BRIDGE_EXIT_DELAY must be a number") from e
    return result


def _merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge configuration dictionaries; later ones take precedence."""
    result: dict[str, Any] = {}
    for config in configs:
        for key, value in config.items():
            if value is not None:
                result[key] = value
    return result


def load_config(
    cli_overrides: dict[str, Any] | None = None,
    start_dir: Path | None = None,
) -> ServerConfig:
    """Load configuration with full precedence chain.

    Precedence (highest to lowest):
    1. CLI arguments (cli_overrides)
    2. Environment variables (ESLINT_BRIDGE_*)
    3. .eslintbridgerc file
    4. pyproject.toml [tool.eslint-bridge] section
    5. Default values

    Args:
        cli_overrides: Configuration overrides from CLI arguments.
        start_dir: Directory to start searching for config files.

    Returns:
        Fully resolved ServerConfig instance.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    cli_config = _filter_fields({k: v for k, v in (cli_overrides or {}).items() if v is not None})

    merged = _merge_configs(
        _load_from_pyproject(start_dir),
        _load_from_rc(start_dir),
        _load_from_env(),
        cli_config,
    )
    return ServerConfig(**merged)
