from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from blast_radius.cli import app

runner = CliRunner()

CONFIG = "\n".join(
    [
        "diff_strategy: previous-commit",
        "file_patterns: ['/src/main/.*']",
        "modules:",
        "  path: A",
        "  children:",
        "    - path: B",
        "      dependencies: [C]",
        "    - path: C",
        "      dependencies: []",
    ]
)


def _config(tmp_path: Path) -> Path:
    path = tmp_path / ".blast-radius.yml"
    path.write_text(CONFIG)
    return path


def test_modules_writes_changed_list(tmp_path: Path, repo_factory):
    _config(tmp_path)
    repo = repo_factory(head="c3", refs={"HEAD~1": "c2"}, diff=["/C/src/main/Foo.txt"])
    out = tmp_path / "changedFiles"

    with patch("blast_radius.cli.GitRepository", return_value=repo):
        result = runner.invoke(app, ["modules", "--path", str(tmp_path), "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert out.read_text() == "A,false\nB,true\nC,true\n"
    assert "changed=2" in result.output


def test_modules_undetermined_marks_everything(tmp_path: Path, repo_factory):
    _config(tmp_path)
    repo = repo_factory(head="c1")
    out = tmp_path / "changedFiles"

    with patch("blast_radius.cli.GitRepository", return_value=repo):
        result = runner.invoke(app, ["modules", "--path", str(tmp_path), "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert out.read_text() == "A,true\nB,true\nC,true\n"


def test_explicit_strategy_without_reference_fails(tmp_path: Path, repo_factory):
    _config(tmp_path)
    repo = repo_factory()

    with patch("blast_radius.cli.GitRepository", return_value=repo):
        result = runner.invoke(
            app,
            ["modules", "--path", str(tmp_path), "--strategy", "explicit-commit", "--out", str(tmp_path / "x")],
        )

    assert result.exit_code == 2
    assert "previous commit must be specified" in result.output


def test_module_query_prints_verdict(tmp_path: Path, repo_factory):
    _config(tmp_path)
    repo = repo_factory(head="c3", refs={"HEAD~1": "c2"}, diff=["/C/src/main/Foo.txt"])

    with patch("blast_radius.cli.GitRepository", return_value=repo):
        changed = runner.invoke(app, ["module", "B", "--path", str(tmp_path)])
        unchanged = runner.invoke(app, ["module", "A", "--path", str(tmp_path), "--exit-code"])

    assert changed.exit_code == 0
    assert changed.output.strip().endswith("true")
    assert unchanged.exit_code == 1
    assert unchanged.output.strip().endswith("false")


def test_unknown_module_fails(tmp_path: Path, repo_factory):
    _config(tmp_path)
    repo = repo_factory(head="c3", refs={"HEAD~1": "c2"}, diff=[])

    with patch("blast_radius.cli.GitRepository", return_value=repo):
        result = runner.invoke(app, ["module", "Z", "--path", str(tmp_path)])

    assert result.exit_code == 2
    assert "Unknown module" in result.output


def test_missing_module_tree_fails(tmp_path: Path):
    result = runner.invoke(app, ["modules", "--path", str(tmp_path)])
    assert result.exit_code == 2
    assert "No module tree configured" in result.output
