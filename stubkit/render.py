from __future__ import annotations

import re

from .config import DEFAULT_IMPORT_PATH_TEMPLATE

FEATURE_NAME_TOKEN = "<FEATURE_NAME>"
IMPORT_PATH_TOKEN = "<IMPORT_PATH>"
TEMPLATE_SUFFIX = ".test.template.ts"

TODO_INSERT_RE = re.compile(r"//\s*INSERT_TODO_MARKER_HERE")


def template_file_name(suite_type: str) -> str:
    return f"{suite_type}{TEMPLATE_SUFFIX}"


def import_path_for(feature_slug: str, import_path_template: str = DEFAULT_IMPORT_PATH_TEMPLATE) -> str:
    return import_path_template.replace("{feature}", feature_slug)


def target_file_name(pattern: str, feature_slug: str, suite_type: str) -> str:
    # Only the first occurrence of each token is substituted.
    return pattern.replace("{feature}", feature_slug, 1).replace("{type}", suite_type, 1)


def substitute_placeholders(text: str, feature_slug: str, import_path: str) -> str:
    return text.replace(FEATURE_NAME_TOKEN, feature_slug).replace(IMPORT_PATH_TOKEN, import_path)


def materialize_todo_marker(todo_marker_template: str, feature_slug: str) -> str:
    return (todo_marker_template or "").replace(FEATURE_NAME_TOKEN, feature_slug)


def insert_todo_marker(text: str, marker: str) -> str:
    """Put ``marker`` at every insertion token, or append it on its own line."""
    if TODO_INSERT_RE.search(text):
        return TODO_INSERT_RE.sub(lambda _match: marker, text)
    return f"{text}\n{marker}\n"


def render_stub(
    template_text: str,
    feature_slug: str,
    todo_marker_template: str,
    import_path_template: str = DEFAULT_IMPORT_PATH_TEMPLATE,
) -> str:
    content = substitute_placeholders(
        template_text,
        feature_slug,
        import_path_for(feature_slug, import_path_template),
    )
    return insert_todo_marker(content, materialize_todo_marker(todo_marker_template, feature_slug))
