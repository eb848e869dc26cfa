from __future__ import annotations

import json
from pathlib import Path

from blast_radius import __version__
from blast_radius.models import ChangeReport


def build_module_list(report: ChangeReport) -> str:
    """Newline separated ``path,true|false`` lines sorted by module path."""
    lines = [f"{path},{'true' if changed else 'false'}" for path, changed in sorted(report.verdicts.items())]
    return "".join(line + "\n" for line in lines)


def write_module_list(report: ChangeReport, path: Path) -> None:
    path.write_text(build_module_list(report))


def write_json_report(report: ChangeReport, path: Path) -> None:
    payload = report.to_dict()
    payload["tool"] = {"name": "blast-radius", "version": __version__}
    path.write_text(json.dumps(payload, indent=2))


def build_markdown_report(report: ChangeReport) -> str:
    s = report.summary()
    if report.commit_range is not None:
        commit_range = f"`{report.commit_range.previous}`..`{report.commit_range.current}`"
    else:
        commit_range = "n/a"
    lines = [
        "# blast-radius change report",
        "",
        f"- **Root Module:** `{report.root}`",
        f"- **Diff Strategy:** `{report.strategy.value}`",
        f"- **Commit Range:** {commit_range}",
        f"- **Changed Paths:** {len(report.changed_paths) if report.changed_paths is not None else 'n/a'}",
        f"- **Modules Changed/Unchanged:** {s['changed']}/{s['unchanged']}",
        "",
    ]

    if report.undetermined:
        lines.extend(
            [
                "> Changes could not be determined, every module is treated as changed.",
                "",
            ]
        )

    lines.extend(["## Modules", "", "| Module | Changed |", "| --- | --- |"])
    for path, changed in sorted(report.verdicts.items()):
        lines.append(f"| `{path}` | {'yes' if changed else 'no'} |")
    lines.append("")

    return "\n".join(lines)


def write_markdown_report(report: ChangeReport, path: Path) -> None:
    path.write_text(build_markdown_report(report))
