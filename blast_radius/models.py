from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ConfigurationError(ValueError):
    """Caller misuse that must not be downgraded to an undetermined diff."""


class DiffStrategy(Enum):
    LAST_SUCCESSFUL_BUILD = "last-successful-build"
    PREVIOUS_TAG = "previous-tag"
    PREVIOUS_COMMIT = "previous-commit"
    EXPLICIT_COMMIT = "explicit-commit"


@dataclass(frozen=True)
class TagRef:
    name: str
    commit: str
    # Commit an annotated tag dereferences to. None when it does not peel to a commit.
    peeled: str | None = None


@dataclass(frozen=True)
class CommitRange:
    previous: str
    current: str


@dataclass(frozen=True)
class Module:
    path: str
    parent: str | None = None
    children: tuple[str, ...] = ()
    # None means the module has no runtime dependency relation at all.
    dependencies: tuple[str, ...] | None = None
    # None means "use the tree-wide default"; an empty tuple matches nothing.
    file_patterns: tuple[str, ...] | None = None
    # Location relative to the repository root; derived from the path when None.
    directory: str | None = None


@dataclass(frozen=True)
class ChangeReport:
    root: str
    strategy: DiffStrategy
    commit_range: CommitRange | None
    changed_paths: list[str] | None
    verdicts: dict[str, bool] = field(default_factory=dict)

    @property
    def undetermined(self) -> bool:
        return self.changed_paths is None

    def changed_modules(self) -> list[str]:
        return [path for path, changed in sorted(self.verdicts.items()) if changed]

    def summary(self) -> dict[str, int]:
        changed = len(self.changed_modules())
        return {
            "total": len(self.verdicts),
            "changed": changed,
            "unchanged": len(self.verdicts) - changed,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "root": self.root,
            "strategy": self.strategy.value,
            "commit_range": (
                {"previous": self.commit_range.previous, "current": self.commit_range.current}
                if self.commit_range is not None
                else None
            ),
            "undetermined": self.undetermined,
            "changed_paths": self.changed_paths,
            "summary": self.summary(),
            "modules": dict(sorted(self.verdicts.items())),
        }
