import json
from pathlib import Path

from typer.testing import CliRunner

from stubkit import __version__
from stubkit.cli import EXIT_ABORTED, EXIT_ERROR, EXIT_INVALID_INPUT, EXIT_NOT_FOUND, EXIT_OK, app

runner = CliRunner()


def _parse_json_output(output: str) -> dict:
    lines = [line for line in output.splitlines() if line.strip()]
    return json.loads(lines[-1])


def _write_project(root: Path, types=("unit", "api")) -> None:
    templates = root / "templates" / "tests"
    templates.mkdir(parents=True)
    for suite_type in types:
        (templates / f"{suite_type}.test.template.ts").write_text(
            f"// {suite_type} test for <FEATURE_NAME>\n// INSERT_TODO_MARKER_HERE\n", encoding="utf-8"
        )
    (root / "stubkit.yml").write_text(
        "testScaffold:\n"
        "  defaultTypes: [unit, api]\n"
        "  fileNaming: '{feature}.{type}.test.js'\n"
        "  todoMarker: '// E2E TODO for <FEATURE_NAME>'\n",
        encoding="utf-8",
    )


def test_scaffold_json_output_schema(tmp_path: Path):
    _write_project(tmp_path)

    result = runner.invoke(app, ["scaffold", "new-e2e-feat", "--root", str(tmp_path), "--yes", "--format", "json"])

    assert result.exit_code == EXIT_OK
    payload = _parse_json_output(result.stdout)
    assert payload["ok"] is True
    assert payload["command"] == "scaffold"
    assert payload["data"]["suites"] == ["unit", "api"]
    tests_dir = tmp_path / "features" / "new-e2e-feat" / "__tests__"
    assert payload["data"]["files_created"] == [
        str(tests_dir / "new-e2e-feat.unit.test.js"),
        str(tests_dir / "new-e2e-feat.api.test.js"),
    ]
    unit = (tests_dir / "new-e2e-feat.unit.test.js").read_text(encoding="utf-8")
    assert "// unit test for new-e2e-feat" in unit
    assert "// E2E TODO for new-e2e-feat" in unit


def test_scaffold_prompt_keeps_json_stdout_clean(tmp_path: Path):
    _write_project(tmp_path)

    result = runner.invoke(app, ["scaffold", "prompted", "--root", str(tmp_path), "--format", "json", "-q"], input="y\n")

    assert result.exit_code == EXIT_OK
    payload = json.loads(result.stdout)
    assert payload["ok"] is True
    assert "Create it?" not in result.stdout
    assert "Create" in result.stderr
    assert (tmp_path / "features" / "prompted" / "__tests__" / "prompted.api.test.js").exists()


def test_scaffold_declined_prompt_returns_aborted(tmp_path: Path):
    _write_project(tmp_path)

    result = runner.invoke(app, ["scaffold", "declined", "--root", str(tmp_path), "--format", "json"], input="n\n")

    assert result.exit_code == EXIT_ABORTED
    payload = _parse_json_output(result.stdout)
    assert payload["ok"] is False
    assert payload["error"]["code"] == "aborted"
    assert not (tmp_path / "features" / "declined").exists()


def test_scaffold_declined_prompt_in_table_mode_is_a_notice(tmp_path: Path):
    _write_project(tmp_path)

    result = runner.invoke(app, ["scaffold", "declined", "--root", str(tmp_path)], input="n\n")

    assert result.exit_code == EXIT_ABORTED
    assert "Aborted by user. Feature folder not created." in result.stdout
    assert "Error (aborted)" not in result.output


def test_scaffold_folder_creation_failure_returns_error(tmp_path: Path):
    _write_project(tmp_path)
    (tmp_path / "features").write_text("not a directory", encoding="utf-8")

    result = runner.invoke(app, ["scaffold", "blocked", "--root", str(tmp_path), "--yes", "--format", "json"])

    assert result.exit_code == EXIT_ERROR
    payload = _parse_json_output(result.stdout)
    assert payload["ok"] is False
    assert payload["error"]["code"] == "folder_creation_failed"
    assert "Could not create feature folder" in payload["error"]["message"]


def test_scaffold_invalid_slug_returns_invalid_input(tmp_path: Path):
    _write_project(tmp_path)

    result = runner.invoke(app, ["scaffold", "bad name", "--root", str(tmp_path), "--format", "json"])

    assert result.exit_code == EXIT_INVALID_INPUT
    payload = _parse_json_output(result.stdout)
    assert payload["error"]["code"] == "invalid_feature_slug"
    assert "Invalid feature slug" in payload["error"]["message"]
    assert not (tmp_path / "features").exists()


def test_scaffold_dry_run_summary(tmp_path: Path):
    _write_project(tmp_path)

    result = runner.invoke(app, ["scaffold", "new-feat-dry", "--root", str(tmp_path), "--dry-run"])

    assert result.exit_code == EXIT_OK
    assert "[dry-run] Test stubs for 'new-feat-dry' would be managed at the following paths:" in result.stdout
    assert "new-feat-dry.unit.test.js" in result.stdout
    assert not (tmp_path / "features").exists()


def test_scaffold_reports_created_files(tmp_path: Path):
    _write_project(tmp_path)
    (tmp_path / "features" / "existing-feature").mkdir(parents=True)

    result = runner.invoke(app, ["scaffold", "existing-feature", "--root", str(tmp_path)])

    assert result.exit_code == EXIT_OK
    assert "Created test file:" in result.stdout
    assert "existing-feature.api.test.js" in result.stdout


def test_scaffold_without_output_files_says_so(tmp_path: Path):
    _write_project(tmp_path, types=())

    result = runner.invoke(app, ["scaffold", "empty-feat", "--root", str(tmp_path), "--yes"])

    assert result.exit_code == EXIT_OK
    assert (
        "No test stub files were created for 'empty-feat'. "
        "Check template directory or use --force for existing files."
    ) in result.stdout


def test_scaffold_types_option_accepts_lists(tmp_path: Path):
    _write_project(tmp_path)

    result = runner.invoke(
        app,
        ["scaffold", "typed", "--root", str(tmp_path), "--yes", "--types", "unit", "--format", "json"],
    )
    payload = _parse_json_output(result.stdout)
    assert payload["data"]["suites"] == ["unit"]
    assert not (tmp_path / "features" / "typed" / "__tests__" / "typed.api.test.js").exists()

    result = runner.invoke(
        app,
        ["scaffold", "typed", "--root", str(tmp_path), "-t", "api,unit", "-t", "e2e", "--format", "json"],
    )
    payload = _parse_json_output(result.stdout)
    assert payload["data"]["suites"] == ["api", "unit", "e2e"]
    assert payload["data"]["failed"] == ["e2e"]
    assert payload["data"]["skipped"] == [str(tmp_path / "features" / "typed" / "__tests__" / "typed.unit.test.js")]


def test_scaffold_empty_types_option_uses_defaults(tmp_path: Path):
    _write_project(tmp_path)

    result = runner.invoke(
        app,
        ["scaffold", "blank", "--root", str(tmp_path), "--yes", "--types", "", "--format", "json"],
    )

    payload = _parse_json_output(result.stdout)
    assert payload["data"]["suites"] == ["unit", "api"]


def test_scaffold_force_overwrites(tmp_path: Path):
    _write_project(tmp_path)
    target = tmp_path / "features" / "forced" / "__tests__" / "forced.unit.test.js"
    target.parent.mkdir(parents=True)
    target.write_text("// Old dummy content", encoding="utf-8")

    result = runner.invoke(app, ["scaffold", "forced", "--root", str(tmp_path), "--force", "--format", "json"])

    assert result.exit_code == EXIT_OK
    assert target.read_text(encoding="utf-8") == "// unit test for forced\n// E2E TODO for forced\n"


def test_ts_alias_runs_scaffold(tmp_path: Path):
    _write_project(tmp_path)

    result = runner.invoke(app, ["ts", "aliased", "--root", str(tmp_path), "--yes", "--format", "json"])

    assert result.exit_code == EXIT_OK
    assert _parse_json_output(result.stdout)["command"] == "scaffold"


def test_scaffold_missing_config_file_returns_not_found(tmp_path: Path):
    result = runner.invoke(
        app,
        ["scaffold", "feat", "--root", str(tmp_path), "--config", "absent.yml", "--format", "json"],
    )

    assert result.exit_code == EXIT_NOT_FOUND
    assert _parse_json_output(result.stdout)["error"]["code"] == "config_not_found"


def test_scaffold_invalid_config_returns_invalid_input(tmp_path: Path):
    (tmp_path / "stubkit.yml").write_text("testScaffold:\n  defaultTypes: unit\n", encoding="utf-8")

    result = runner.invoke(app, ["scaffold", "feat", "--root", str(tmp_path), "--format", "json"])

    assert result.exit_code == EXIT_INVALID_INPUT
    assert _parse_json_output(result.stdout)["error"]["code"] == "config_error"


def test_init_then_templates_json(tmp_path: Path):
    result = runner.invoke(app, ["init", "--root", str(tmp_path), "--format", "json"])

    assert result.exit_code == EXIT_OK
    payload = _parse_json_output(result.stdout)
    assert len(payload["data"]["created"]) == 5

    result = runner.invoke(app, ["templates", "--root", str(tmp_path), "--format", "json"])

    assert result.exit_code == EXIT_OK
    payload = _parse_json_output(result.stdout)
    assert payload["data"]["available"] == ["unit", "integration", "a11y", "api"]
    assert payload["data"]["missing"] == []


def test_scaffold_markdown_output(tmp_path: Path):
    _write_project(tmp_path)
    (tmp_path / "features" / "md-feat").mkdir(parents=True)

    result = runner.invoke(app, ["scaffold", "md-feat", "--root", str(tmp_path), "-t", "unit,e2e", "--format", "md"])

    assert result.exit_code == EXIT_OK
    assert "# Test stubs: `md-feat`" in result.stdout
    assert "- **suites**: unit, e2e" in result.stdout
    assert "Created test file:" in result.stdout
    assert "## Failed suite types\n- `e2e`" in result.stdout


def test_init_and_templates_markdown_output(tmp_path: Path):
    result = runner.invoke(app, ["init", "--root", str(tmp_path), "-t", "unit", "--format", "md"])

    assert result.exit_code == EXIT_OK
    assert "# Starter templates in `" in result.stdout
    assert "unit.test.template.ts" in result.stdout
    assert "- **skipped**: none" in result.stdout

    result = runner.invoke(app, ["templates", "--root", str(tmp_path), "--format", "md"])

    assert result.exit_code == EXIT_OK
    assert "# Templates in `" in result.stdout
    assert "- **available**: unit" in result.stdout
    assert "- **missing**: none" in result.stdout
    assert "- **extra**: none" in result.stdout


def test_templates_without_directory_returns_not_found(tmp_path: Path):
    result = runner.invoke(app, ["templates", "--root", str(tmp_path), "--format", "json"])

    assert result.exit_code == EXIT_NOT_FOUND
    assert _parse_json_output(result.stdout)["error"]["code"] == "template_dir_not_found"


def test_version_json():
    result = runner.invoke(app, ["version", "--format", "json"])

    assert result.exit_code == EXIT_OK
    assert _parse_json_output(result.stdout)["data"] == {"version": __version__}
