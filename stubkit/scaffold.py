from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .config import ScaffoldConfig
from .filesystem import FileSystem, LocalFileSystem
from .render import render_stub, target_file_name, template_file_name

logger = logging.getLogger(__name__)

SLUG_RE = re.compile(r"^[A-Za-z0-9_-]+$")
TESTS_DIR_NAME = "__tests__"

ConfirmFn = Callable[[str, bool], bool]


@dataclass(frozen=True)
class ScaffoldOptions:
    dry_run: bool = False
    force: bool = False
    all: bool = False
    types: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ScaffoldResult:
    success: bool
    files_created: tuple[str, ...] = ()
    aborted: bool = False
    feature_path: str | None = None
    suites: tuple[str, ...] = ()
    dry_run: bool = False
    skipped: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()
    error: str | None = None


class ScaffoldError(RuntimeError):
    pass


class InvalidFeatureSlugError(ScaffoldError):
    pass


class FolderCreationError(ScaffoldError):
    pass


def accept_default(message: str, default: bool) -> bool:
    """Non-interactive confirmation: always take the default answer."""
    return default


def validate_feature_slug(feature_slug: str) -> str:
    if not isinstance(feature_slug, str) or not SLUG_RE.match(feature_slug):
        raise InvalidFeatureSlugError(
            f"Invalid feature slug '{feature_slug}'. Use only alphanumeric characters, underscores, or hyphens."
        )
    return feature_slug


def resolve_suite_types(options: ScaffoldOptions, config: ScaffoldConfig) -> tuple[str, ...]:
    # An empty override means "no override"; `all` changes nothing.
    if options.types:
        return tuple(options.types)
    return tuple(config.default_suite_types)


def _ensure_feature_folder(
    feature_dir: Path,
    options: ScaffoldOptions,
    fs: FileSystem,
    confirm: ConfirmFn,
    log: logging.Logger,
) -> bool:
    """Return False when the user declined creating the folder."""
    if fs.exists(feature_dir):
        log.info("Feature folder found: %s", feature_dir)
        return True

    if options.dry_run:
        log.info("[dry-run] Feature folder '%s' does not exist.", feature_dir)
        log.info("[dry-run] Would prompt to create feature folder: %s", feature_dir)
        return True

    if not confirm(f"Feature folder '{feature_dir}' not found. Create it?", True):
        log.info("Aborted by user. Feature folder not created.")
        return False

    try:
        fs.make_dirs(feature_dir)
    except OSError as error:
        raise FolderCreationError(f"Could not create feature folder {feature_dir}: {error}") from error
    log.info("Created feature folder: %s", feature_dir)
    return True


def scaffold_tests(
    feature_slug: str,
    options: ScaffoldOptions,
    config: ScaffoldConfig,
    *,
    root: Path = Path("."),
    fs: FileSystem | None = None,
    confirm: ConfirmFn = accept_default,
    logger: logging.Logger = logger,
) -> ScaffoldResult:
    """Generate test stubs for one feature.

    Validates the slug, makes sure ``<features_dir>/<slug>`` exists (asking
    through ``confirm`` before creating it), then renders one stub per suite
    type into ``<features_dir>/<slug>/__tests__``. Problems with a single
    suite type are logged and skipped; only an invalid slug, a failed folder
    creation or a declined prompt make the result unsuccessful.
    """
    fs = fs or LocalFileSystem()

    try:
        validate_feature_slug(feature_slug)
        feature_dir = root / config.features_dir / feature_slug
        if not _ensure_feature_folder(feature_dir, options, fs, confirm, logger):
            return ScaffoldResult(success=False, aborted=True, dry_run=options.dry_run)
    except ScaffoldError as error:
        logger.error("%s", error)
        return ScaffoldResult(success=False, dry_run=options.dry_run, error=str(error))

    suites = resolve_suite_types(options, config)
    logger.info("Test suites to scaffold for '%s': %s", feature_slug, ", ".join(suites))

    tests_dir = feature_dir / TESTS_DIR_NAME
    template_dir = config.template_dir_for(root)
    files_created: list[str] = []
    skipped: list[str] = []
    failed: list[str] = []

    for suite_type in suites:
        if not SLUG_RE.match(suite_type):
            logger.warning("Invalid suite type '%s'. Skipping.", suite_type)
            failed.append(suite_type)
            continue

        template_path = template_dir / template_file_name(suite_type)
        if not fs.exists(template_path):
            logger.warning("Template file not found for type '%s': %s. Skipping.", suite_type, template_path)
            failed.append(suite_type)
            continue

        try:
            template_text = fs.read_text(template_path)
        except OSError as error:
            logger.warning("Error reading template file %s: %s. Skipping '%s'.", template_path, error, suite_type)
            failed.append(suite_type)
            continue

        content = render_stub(
            template_text,
            feature_slug,
            config.todo_marker_template,
            config.import_path_template,
        )
        target_path = tests_dir / target_file_name(config.file_naming_pattern, feature_slug, suite_type)
        target_exists = fs.exists(target_path)

        if options.dry_run:
            logger.info("[dry-run] Would create/overwrite test file: %s", target_path)
            if target_exists and not options.force:
                logger.info("[dry-run] File %s exists and --force not used. Would skip.", target_path)
            files_created.append(str(target_path))
            continue

        if target_exists and not options.force:
            logger.info("Skipping existing file: %s (use --force to overwrite)", target_path)
            skipped.append(str(target_path))
            continue

        try:
            if not fs.exists(target_path.parent):
                fs.make_dirs(target_path.parent)
            fs.write_text(target_path, content)
        except OSError as error:
            logger.error("Error writing file %s: %s", target_path, error)
            failed.append(suite_type)
            continue
        logger.debug("Wrote %s", target_path)
        files_created.append(str(target_path))

    return ScaffoldResult(
        success=True,
        files_created=tuple(files_created),
        feature_path=str(feature_dir),
        suites=suites,
        dry_run=options.dry_run,
        skipped=tuple(skipped),
        failed=tuple(failed),
    )
