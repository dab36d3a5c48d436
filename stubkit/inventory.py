from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .config import ScaffoldConfig
from .render import TEMPLATE_SUFFIX, template_file_name


@dataclass(frozen=True)
class TemplateReport:
    template_dir: Path
    available: tuple[str, ...]
    missing: tuple[str, ...]
    extra: tuple[str, ...]


class InventoryError(RuntimeError):
    pass


def _template_types_on_disk(template_dir: Path) -> set[str]:
    found: set[str] = set()
    for path in template_dir.glob(f"*{TEMPLATE_SUFFIX}"):
        if path.is_file():
            found.add(path.name[: -len(TEMPLATE_SUFFIX)])
    return found


def inspect_templates(config: ScaffoldConfig, root: Path = Path(".")) -> TemplateReport:
    template_dir = config.template_dir_for(root)
    if not template_dir.exists() or not template_dir.is_dir():
        raise InventoryError(f"Template directory does not exist: {template_dir}")

    configured = tuple(dict.fromkeys(config.default_suite_types))
    available = tuple(t for t in configured if (template_dir / template_file_name(t)).is_file())
    missing = tuple(t for t in configured if t not in available)

    # Extra templates can still be used through an explicit --types override.
    extra = tuple(sorted(_template_types_on_disk(template_dir) - set(configured)))

    return TemplateReport(
        template_dir=template_dir,
        available=available,
        missing=missing,
        extra=extra,
    )
