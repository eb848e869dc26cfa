from __future__ import annotations

from pathlib import Path
import typer

from blast_radius.commit_range import CommitRangeResolver, parse_strategy
from blast_radius.config import (
    BlastRadiusConfig,
    configure_logging,
    load_config,
    previous_build_ref,
)
from blast_radius.git_scope import GitRepository, GitScopeError, changed_paths
from blast_radius.models import ConfigurationError
from blast_radius.propagation import ChangePropagator, detect_changes
from blast_radius.reporters import (
    write_json_report,
    write_markdown_report,
    write_module_list,
)

app = typer.Typer(help="blast-radius: detect which build modules changed since a reference point")


@app.callback()
def main() -> None:
    """blast-radius command group."""


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)
    raise typer.Exit(code=2)


def _load(
    path: str,
    config: str | None,
    strategy: str | None,
    previous_commit: str | None,
    pattern: list[str] | None,
) -> tuple[Path, BlastRadiusConfig]:
    root = Path(path).resolve()
    if not root.exists():
        _fail(f"Path does not exist: {root}")

    cfg = load_config(config, root=root)
    return root, cfg.with_overrides(
        diff_strategy=parse_strategy(strategy) if strategy else None,
        previous_commit=previous_commit,
        file_patterns=tuple(pattern) if pattern else None,
    )


@app.command()
def modules(
    path: str = typer.Option(".", help="Path to the git working tree"),
    config: str | None = typer.Option(None, help="Config YAML path (default: <path>/.blast-radius.yml)"),
    strategy: str | None = typer.Option(
        None, help="Diff strategy: last-successful-build|previous-tag|previous-commit|explicit-commit"
    ),
    previous_commit: str | None = typer.Option(None, help="Reference to diff against for explicit-commit"),
    pattern: list[str] | None = typer.Option(None, help="File pattern, repeatable; replaces the default set"),
    out: str | None = typer.Option(None, help="Changed modules list output path (default: changedFiles)"),
    json_out: str | None = typer.Option(None, help="Optional JSON report output path"),
    md_out: str | None = typer.Option(None, help="Optional Markdown report output path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors"),
) -> None:
    """Write a path,true|false line for every module of the tree."""
    configure_logging(verbose=verbose, quiet=quiet)
    try:
        root, cfg = _load(path, config, strategy, previous_commit, pattern)
        tree = cfg.require_modules()
        repo = GitRepository(root)
        branch = repo.current_branch()
        if branch:
            typer.echo(f"Currently on branch {branch}")
        report = detect_changes(
            repo,
            tree,
            cfg.diff_strategy,
            cfg.default_patterns(),
            explicit_ref=cfg.previous_commit,
            previous_build_ref=previous_build_ref(cfg),
        )
    except (ConfigurationError, GitScopeError, FileNotFoundError) as exc:
        _fail(str(exc))
        return

    out_path = Path(out or cfg.output)
    write_module_list(report, out_path)
    written = [str(out_path)]
    if json_out:
        write_json_report(report, Path(json_out))
        written.append(json_out)
    if md_out:
        write_markdown_report(report, Path(md_out))
        written.append(md_out)

    summary = report.summary()
    if report.undetermined:
        typer.secho("Changes could not be determined, treating every module as changed", fg=typer.colors.YELLOW)
    typer.echo(
        f"Modules total={summary['total']} changed={summary['changed']} unchanged={summary['unchanged']} strategy={report.strategy.value}"
    )
    typer.echo(f"Wrote: {', '.join(written)}")


@app.command()
def module(
    module_path: str = typer.Argument(..., help="Module path, e.g. ':services:api'"),
    path: str = typer.Option(".", help="Path to the git working tree"),
    config: str | None = typer.Option(None, help="Config YAML path (default: <path>/.blast-radius.yml)"),
    strategy: str | None = typer.Option(
        None, help="Diff strategy: last-successful-build|previous-tag|previous-commit|explicit-commit"
    ),
    previous_commit: str | None = typer.Option(None, help="Reference to diff against for explicit-commit"),
    pattern: list[str] | None = typer.Option(None, help="File pattern, repeatable; replaces the default set"),
    exit_code: bool = typer.Option(False, "--exit-code", help="Exit with 1 when the module has not changed"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors"),
) -> None:
    """Print true when MODULE_PATH should be built/deployed, false otherwise."""
    configure_logging(verbose=verbose, quiet=quiet)
    try:
        root, cfg = _load(path, config, strategy, previous_commit, pattern)
        tree = cfg.require_modules()
        repo = GitRepository(root)
        resolver = CommitRangeResolver(repo, previous_build_ref=previous_build_ref(cfg))
        commit_range = resolver.resolve(cfg.diff_strategy, cfg.previous_commit)
        propagator = ChangePropagator(tree, cfg.default_patterns(single_module=True))
        changed = propagator.module_changed(module_path, changed_paths(repo, commit_range))
    except (ConfigurationError, GitScopeError, FileNotFoundError) as exc:
        _fail(str(exc))
        return

    typer.echo("true" if changed else "false")
    if exit_code and not changed:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
