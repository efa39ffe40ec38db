"""Layered configuration loading and persistence."""
import json
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from branchlet.config import Config, FIELD_NAMES, JSON_KEYS
from branchlet.constants import LOCAL_CONFIG_FILE_NAME, global_config_file
from branchlet.exceptions import ConfigError
from branchlet.utils.logging import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


class ConfigService:
    """Resolves the effective Config from the global and project-local files.

    The global file (``~/.branchlet/settings.json``) is the base; a project's
    ``.branchlet.json`` overrides it field by field. The service never hands
    out a shared mutable config: every resolve or save produces a new value.
    """

    def __init__(self, global_config_file_path: Optional[PathLike] = None):
        """Initialize the config service.

        Args:
            global_config_file_path: Override for the global settings file
        """
        self.global_config_file = (
            Path(global_config_file_path) if global_config_file_path else global_config_file()
        )
        self._config_path: Optional[Path] = None

    @property
    def config_path(self) -> Optional[Path]:
        """File the last resolve() would save to: the local file if one was used, else global."""
        return self._config_path

    def _read_json(self, path: Path) -> Optional[Dict[str, Any]]:
        """Read a JSON object from disk, returning None if missing or malformed."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring malformed config file {path}: {e}")
            return None
        except OSError as e:
            logger.warning(f"Could not read config file {path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {path}: top level is not a JSON object")
            return None
        return data

    def _overlay_file(self, base: Config, path: Path) -> Optional[Config]:
        """Overlay a config file onto ``base``; None if the file is absent or invalid."""
        data = self._read_json(path)
        if data is None:
            return None
        try:
            return base.overlay(data)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring invalid config file {path}: {e}")
            return None

    def _write(self, config: Config, path: Path) -> None:
        """Write a config to disk, creating the parent directory first."""
        self._write_json(config.to_dict(), path)

    def _write_json(self, data: Dict[str, Any], path: Path) -> None:
        """Write ``data`` as two-space indented JSON, creating parent directories.

        Raises:
            ConfigError: If the file cannot be written
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
        except OSError as e:
            raise ConfigError(f"Failed to save config: {e}", str(path)) from e
        logger.debug(f"Wrote config to {path}")

    def has_global_config(self) -> bool:
        """Check whether the global settings file exists."""
        return self.global_config_file.exists()

    def ensure_global_config(self) -> None:
        """Materialize the global settings file from defaults if it does not exist.

        Calling this repeatedly never changes an existing file.
        """
        if self.has_global_config():
            return
        logger.info(f"Creating default global config at {self.global_config_file}")
        self._write(Config(), self.global_config_file)

    def create_global_config(self) -> Path:
        """(Re)write the global settings file with defaults and return its path."""
        self._write(Config(), self.global_config_file)
        self._config_path = self.global_config_file
        return self.global_config_file

    def resolve(self, project_path: Optional[PathLike] = None) -> Config:
        """
        Load the effective configuration for a project.

        Args:
            project_path: Project root holding the optional local config (defaults to cwd)

        Returns:
            The merged Config
        """
        self.ensure_global_config()

        config = Config()
        global_config = self._overlay_file(config, self.global_config_file)
        if global_config is not None:
            config = global_config

        local_path = self.local_config_file(project_path or Path.cwd())
        local_config = self._overlay_file(config, local_path)
        if local_config is not None:
            logger.debug(f"Applied local config overrides from {local_path}")
            config = local_config
            self._config_path = local_path
        else:
            self._config_path = self.global_config_file

        return config

    def save(self, config: Union[Config, Dict[str, Any]], path: Optional[PathLike] = None) -> Path:
        """
        Validate and persist a configuration.

        Args:
            config: Configuration to write
            path: Destination file (defaults to the file used by the last resolve())

        Returns:
            The path written

        Raises:
            ConfigError: If no path is known, the config is invalid, or writing fails
        """
        target = Path(path) if path else self._config_path
        if target is None:
            raise ConfigError("No config path available for saving")

        try:
            config = Config.from_dict(config.to_dict() if isinstance(config, Config) else config)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}", str(target)) from e

        self._write(config, target)
        self._config_path = target
        return target

    def local_config_file(self, project_path: PathLike) -> Path:
        """Path of the project's local config file."""
        return Path(project_path) / LOCAL_CONFIG_FILE_NAME

    def _update_fields(
        self, path: Path, changes: Dict[str, Any], removed: Iterable[str] = ()
    ) -> Path:
        """Rewrite the known fields of one config file, keeping the fields it already sets.

        Raises:
            ConfigError: If a field name is unknown, a value is invalid, or writing fails
        """
        existing = self._read_json(path) or {}
        file_fields = {key: value for key, value in existing.items() if key in FIELD_NAMES}

        for name in removed:
            if name not in JSON_KEYS:
                raise ConfigError(f"Unknown configuration field '{name}'", str(path))
            file_fields.pop(JSON_KEYS[name], None)

        for name, value in changes.items():
            if name not in JSON_KEYS:
                raise ConfigError(f"Unknown configuration field '{name}'", str(path))
            file_fields[JSON_KEYS[name]] = value

        try:
            Config.from_dict(file_fields)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}", str(path)) from e

        self._write_json(file_fields, path)
        self._config_path = path
        return path

    def save_local_fields(self, project_path: PathLike, **changes: Any) -> Path:
        """
        Persist only the given fields into the project's local config file.

        Fields already present in a valid local file are kept; fields not
        mentioned keep inheriting from the global file.

        Raises:
            ConfigError: If a changed value is invalid or writing fails
        """
        return self._update_fields(self.local_config_file(project_path), changes)

    def save_global_fields(self, **changes: Any) -> Path:
        """Persist the given fields into the global settings file."""
        self.ensure_global_config()
        return self._update_fields(self.global_config_file, changes)

    def unset_field(self, name: str, project_path: Optional[PathLike] = None) -> Path:
        """
        Remove a field from the local file (or the global file without ``project_path``).

        The field then inherits from the next layer: the global file for a
        local unset, the built-in default for a global one.
        """
        if project_path is None:
            self.ensure_global_config()
            return self._update_fields(self.global_config_file, {}, removed=[name])
        return self._update_fields(self.local_config_file(project_path), {}, removed=[name])

    def reset_local_config(self, project_path: PathLike) -> Path:
        """Empty the project's local config so every field inherits from the global file."""
        path = self.local_config_file(project_path)
        self._write_json({}, path)
        self._config_path = path
        return path

    def set_branch_prefix(self, project_path: PathLike, prefix: str) -> Path:
        """Store a branch prefix in the project's local config."""
        return self.save_local_fields(project_path, branch_prefix=prefix)

    def clear_branch_prefix(self, project_path: PathLike) -> Path:
        """Clear the branch prefix in the project's local config."""
        return self.save_local_fields(project_path, branch_prefix="")
