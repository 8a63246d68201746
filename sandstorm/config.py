"""
Config system - Layered configuration with typed settings.

Merge order (later overrides earlier):
1. Settings defaults
2. Config files (YAML or JSON)
3. .env file (SANDSTORM_* keys)
4. Environment variables (SANDSTORM_* prefix)
5. Manual overrides
"""

from typing import Any, Dict, Optional, Tuple, get_origin, get_args
from dataclasses import dataclass, field, fields, MISSING, replace
from pathlib import Path
import os
import json
import types

from dotenv import dotenv_values

from .faults import ConfigMissingError


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


_NO_DEFAULT = object()


@dataclass(frozen=True)
class Settings:
    """
    Typed dispatch settings. Immutable after creation.

    Paths are resolved against the working directory unless absolute.
    """

    # Filesystem roots
    site_root: Path = Path("site")
    app_root: Path = Path(".")
    library_root: Path = Path("lib")
    system_root: Path = Path("sys")
    widget_root: Path = Path("widget")

    # Modes
    dev_mode: bool = False
    debug: bool = False

    # Static resources ("404 page" / "500 page" in config files)
    page_404: Optional[str] = None
    page_500: Optional[str] = None

    # Persisted rewrite rules
    rule_file: Optional[str] = None

    # Naming conventions
    extension: str = ".py"
    controller_suffix: str = "Controller"
    default_handler: str = "default"
    default_action: str = "index"
    minify_group: str = "minify"

    # Framework helper names -> importable module
    helpers: Dict[str, str] = field(default_factory=lambda: {
        "Controller": "sandstorm.controller.base",
        "ViewState": "sandstorm.views.state",
    })

    def resource(self, name: str) -> Optional[Path]:
        """Absolute path of a configured site resource such as ``page_404``."""
        value = getattr(self, name)
        if not value:
            return None
        path = Path(value)
        return path if path.is_absolute() else self.site_root / path

    def with_overrides(self, **changes: Any) -> "Settings":
        return replace(self, **changes)


# Settings kept verbatim when read from the environment
_TEXT_FIELDS = frozenset(
    f.name for f in fields(Settings) if f.type in (str, Optional[str])
)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    # Spelling used by site configuration files
    ALIASES = {
        "404 page": "page_404",
        "500 page": "page_500",
        "devmode": "dev_mode",
        "path_site": "site_root",
        "path_dll": "library_root",
        "path_sys": "system_root",
        "path_widget": "widget_root",
    }

    def __init__(self, env_prefix: str = "SANDSTORM_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list] = None,
        env_prefix: str = "SANDSTORM_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        use_environ: bool = True,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources.

        Args:
            paths: Config file paths (.yaml, .yml or .json)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)
            use_environ: Read ``os.environ``

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        for path in paths or []:
            loader._load_file(Path(path))

        if env_file:
            loader._load_env_file(env_file)

        if use_environ:
            loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_file(self, path: Path):
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        if path.suffix == ".json":
            self._load_json_file(path)
        elif path.suffix in (".yaml", ".yml"):
            self._load_yaml_file(path)
        else:
            raise ConfigError(f"Unsupported config file type: {path}")

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
            self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f)
            if data:
                self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load config from .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert SANDSTORM_HELPERS__VIEWSTATE to a nested dict."""
        key = key[len(self.env_prefix):]
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        leaf = self.ALIASES.get(parts[-1], parts[-1])
        if len(parts) == 1 and leaf in _TEXT_FIELDS:
            current[leaf] = value
        else:
            current[leaf] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            key = self.ALIASES.get(key, key)
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = _NO_DEFAULT) -> Any:
        """
        Get config value by dot-separated path.

        Example:
            config.get("404 page")
            config.get("helpers.Controller")

        Raises:
            ConfigMissingError: The key is absent and no default was given
        """
        path = self.ALIASES.get(path, path)
        current: Any = self.config_data

        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            elif default is _NO_DEFAULT:
                raise ConfigMissingError(path)
            else:
                return default

        return current

    def settings(self) -> Settings:
        """Build validated ``Settings`` from the merged data."""
        kwargs = {}

        for field_info in fields(Settings):
            name = field_info.name
            if name not in self.config_data:
                continue

            value = self.config_data[name]
            if field_info.type is Path and isinstance(value, str):
                value = Path(value)
            elif field_info.type is Path and value is None:
                continue
            elif name in _TEXT_FIELDS and isinstance(value, (int, float)) and not isinstance(value, bool):
                value = str(value)

            if name == "helpers" and isinstance(value, dict):
                default = field_info.default_factory() if field_info.default_factory is not MISSING else {}
                value = {**default, **value}

            if not self._check_type(value, field_info.type):
                raise ConfigError(
                    f"Config field '{name}' expected {field_info.type}, "
                    f"got {type(value).__name__}"
                )
            kwargs[name] = value

        return Settings(**kwargs)

    def _check_type(self, value: Any, expected_type: Any) -> bool:
        """Basic type checking."""
        origin = get_origin(expected_type)
        if origin is types.UnionType or str(origin) == 'typing.Union':
            if value is None:
                return True
            return any(self._check_type(value, arg) for arg in get_args(expected_type) if arg is not type(None))

        if origin:
            return isinstance(value, origin)

        try:
            return isinstance(value, expected_type)
        except TypeError:
            return True

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()


def load_settings(
    paths: Optional[list] = None,
    env_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Tuple[ConfigLoader, Settings]:
    """Load configuration and build settings in one step."""
    loader = ConfigLoader.load(paths=paths, env_file=env_file, overrides=overrides)
    return loader, loader.settings()
