from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from . import __version__
from .config import CONFIG_FILE_NAME, CONFIG_NAMESPACE, ScaffoldConfig, templates_root
from .render import template_file_name
from .scaffold import SLUG_RE

logger = logging.getLogger(__name__)

STARTER_SCOPE = "starter/tests"
GENERIC_STARTER = "generic"
STARTER_SUFFIX = ".test.template.ts.j2"

CONFIG_HEADER = "# stubkit project configuration. Every key is optional.\n"


@dataclass(frozen=True)
class InitReport:
    template_dir: Path
    created: tuple[str, ...]
    skipped: tuple[str, ...]


class StarterError(RuntimeError):
    pass


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(templates_root())),
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def available_starters() -> tuple[str, ...]:
    base = templates_root() / STARTER_SCOPE
    if not base.exists():
        return ()
    return tuple(sorted(path.name[: -len(STARTER_SUFFIX)] for path in base.glob(f"*{STARTER_SUFFIX}")))


def _starter_template_name(suite_type: str, starters: Iterable[str]) -> str:
    name = suite_type if suite_type in starters else GENERIC_STARTER
    return f"{STARTER_SCOPE}/{name}{STARTER_SUFFIX}"


def _config_document(root: Path, config: ScaffoldConfig, template_dir: Path, suite_types: tuple[str, ...]) -> dict:
    try:
        template_setting = template_dir.relative_to(root).as_posix() + "/"
    except ValueError:
        template_setting = str(template_dir)
    return {
        CONFIG_NAMESPACE: {
            "templateDir": template_setting,
            "fileNamingPattern": config.file_naming_pattern,
            "todoMarkerTemplate": config.todo_marker_template,
            "defaultSuiteTypes": list(suite_types),
            "importPathTemplate": config.import_path_template,
            "featuresDir": config.features_dir,
        }
    }


def _write(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as error:
        raise StarterError(f"Could not write {path}: {error}") from error


def init_templates(
    root: Path,
    config: ScaffoldConfig,
    types: Iterable[str] | None = None,
    force: bool = False,
) -> InitReport:
    """Install starter templates and a starter ``stubkit.yml`` into ``root``.

    Existing templates are kept unless ``force`` is set. The config file is
    only written when the project has none.
    """
    root = root.resolve()
    template_dir = config.template_dir_for(root)
    suite_types = tuple(dict.fromkeys(types)) if types else tuple(config.default_suite_types)
    for suite_type in suite_types:
        if not SLUG_RE.match(suite_type):
            raise StarterError(f"Invalid suite type: {suite_type!r}")

    try:
        template_dir.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise StarterError(f"Could not create template directory {template_dir}: {error}") from error

    env = _environment()
    starters = available_starters()
    created: list[str] = []
    skipped: list[str] = []

    for suite_type in suite_types:
        destination = template_dir / template_file_name(suite_type)
        if destination.exists() and not force:
            logger.info("Skipping existing template: %s", destination)
            skipped.append(str(destination))
            continue

        rendered = env.get_template(_starter_template_name(suite_type, starters)).render(
            suite_type=suite_type,
            version=__version__,
        )
        _write(destination, rendered)
        logger.info("Created template: %s", destination)
        created.append(str(destination))

    config_file = root / CONFIG_FILE_NAME
    if config_file.exists():
        skipped.append(str(config_file))
    else:
        document = _config_document(root, config, template_dir, suite_types)
        _write(config_file, CONFIG_HEADER + yaml.safe_dump(document, sort_keys=False))
        logger.info("Created config: %s", config_file)
        created.append(str(config_file))

    return InitReport(template_dir=template_dir, created=tuple(created), skipped=tuple(skipped))
