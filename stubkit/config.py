from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "stubkit.yml"
CONFIG_NAMESPACE = "testScaffold"

DEFAULT_TEMPLATE_DIR = "templates/tests/"
DEFAULT_FILE_NAMING_PATTERN = "{feature}.{type}.test.ts"
DEFAULT_TODO_MARKER_TEMPLATE = "// TODO: write meaningful assertions for <FEATURE_NAME>"
DEFAULT_SUITE_TYPES = ("unit", "integration", "a11y", "api")
DEFAULT_IMPORT_PATH_TEMPLATE = "../../{feature}"
DEFAULT_FEATURES_DIR = "features"

# Config key -> accepted spellings, first one wins.
_KEY_ALIASES = {
    "template_dir": ("templateDir",),
    "file_naming_pattern": ("fileNamingPattern", "fileNaming"),
    "todo_marker_template": ("todoMarkerTemplate", "todoMarker"),
    "default_suite_types": ("defaultSuiteTypes", "defaultTypes"),
    "import_path_template": ("importPathTemplate",),
    "features_dir": ("featuresDir",),
}


class ConfigError(RuntimeError):
    pass


class ConfigNotFoundError(ConfigError):
    pass


@dataclass(frozen=True)
class ScaffoldConfig:
    template_dir: Path = Path(DEFAULT_TEMPLATE_DIR)
    file_naming_pattern: str = DEFAULT_FILE_NAMING_PATTERN
    todo_marker_template: str = DEFAULT_TODO_MARKER_TEMPLATE
    default_suite_types: tuple[str, ...] = DEFAULT_SUITE_TYPES
    import_path_template: str = DEFAULT_IMPORT_PATH_TEMPLATE
    features_dir: str = DEFAULT_FEATURES_DIR

    def template_dir_for(self, root: Path) -> Path:
        """Return ``template_dir``, resolved against ``root`` when relative."""
        if self.template_dir.is_absolute():
            return self.template_dir
        return root / self.template_dir


def templates_root() -> Path:
    return Path(__file__).resolve().parent / "templates"


def _lookup(section: Mapping[str, Any], name: str) -> Any:
    for key in _KEY_ALIASES[name]:
        if key in section and section[key] is not None:
            return section[key]
    return None


def _as_string(section: Mapping[str, Any], name: str, default: str) -> str:
    value = _lookup(section, name)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"{CONFIG_NAMESPACE}.{_KEY_ALIASES[name][0]} must be a string, got {type(value).__name__}")
    return value


def _as_suite_types(section: Mapping[str, Any]) -> tuple[str, ...]:
    value = _lookup(section, "default_suite_types")
    if value is None:
        return DEFAULT_SUITE_TYPES
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{CONFIG_NAMESPACE}.defaultSuiteTypes must be a list of strings")
    return tuple(value)


def config_from_mapping(data: Mapping[str, Any] | None, root: Path = Path(".")) -> ScaffoldConfig:
    """Build a :class:`ScaffoldConfig` from a loaded settings document.

    Only the ``testScaffold`` namespace is read; every key is optional and
    falls back to its default. ``templateDir`` is resolved against ``root``.
    """
    data = data or {}
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration document must be a mapping.")

    section = data.get(CONFIG_NAMESPACE) or {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"'{CONFIG_NAMESPACE}' must be a mapping.")

    template_dir = _as_string(section, "template_dir", DEFAULT_TEMPLATE_DIR)
    return ScaffoldConfig(
        template_dir=(root / template_dir).resolve(),
        file_naming_pattern=_as_string(section, "file_naming_pattern", DEFAULT_FILE_NAMING_PATTERN),
        todo_marker_template=_as_string(section, "todo_marker_template", DEFAULT_TODO_MARKER_TEMPLATE),
        default_suite_types=_as_suite_types(section),
        import_path_template=_as_string(section, "import_path_template", DEFAULT_IMPORT_PATH_TEMPLATE),
        features_dir=_as_string(section, "features_dir", DEFAULT_FEATURES_DIR),
    )


def load_config(root: Path = Path("."), config_path: Path | None = None) -> ScaffoldConfig:
    if config_path is None:
        path = root / CONFIG_FILE_NAME
        if not path.exists():
            logger.warning("No config file found at %s. Using defaults.", path)
            return config_from_mapping({}, root)
    else:
        path = config_path if config_path.is_absolute() else root / config_path
        if not path.exists():
            raise ConfigNotFoundError(f"Config file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as error:
        raise ConfigError(f"Could not parse {path}: {error}") from error
    except OSError as error:
        raise ConfigError(f"Could not read {path}: {error}") from error

    logger.debug("Loaded config from %s", path)
    return config_from_mapping(data, root)
