from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from blast_radius.commit_range import CommitRangeResolver
from blast_radius.git_scope import VersionControl, changed_paths
from blast_radius.models import ChangeReport, DiffStrategy
from blast_radius.modules import ModuleTree, relevant_paths
from blast_radius.patterns import build_matchers, matches_any

logger = logging.getLogger(__name__)


class ChangePropagator:
    def __init__(self, tree: ModuleTree, default_patterns: Iterable[str]) -> None:
        self.tree = tree
        self.default_patterns = tuple(default_patterns)

    def patterns_for(self, path: str) -> tuple[str, ...]:
        declared = self.tree.declared_patterns(path)
        return self.default_patterns if declared is None else declared

    def matchers_for(self, path: str) -> frozenset[re.Pattern[str]]:
        """Own matchers plus those of every module in the dependency closure."""
        matchers: set[re.Pattern[str]] = set()
        for relevant in sorted(relevant_paths(self.tree, path)):
            matchers |= build_matchers(self.tree.directory(relevant), self.patterns_for(relevant))
        return frozenset(matchers)

    def changed_directly(self, path: str, diff_paths: Sequence[str]) -> bool:
        """Whether ``path`` or its dependency closure matches, ignoring ancestors."""
        return matches_any(diff_paths, self.matchers_for(path))

    def _verdict(self, path: str, diff_paths: Sequence[str], parent_changed: bool) -> bool:
        changed = parent_changed or self.changed_directly(path, diff_paths)
        if changed:
            logger.info("Module %s has changed", path)
        else:
            logger.info("Module %s hasn't changed", path)
        return changed

    def propagate(self, diff_paths: Sequence[str] | None) -> dict[str, bool]:
        if diff_paths is None:
            return {path: True for path in self.tree.paths()}

        verdicts: dict[str, bool] = {}
        for module in self.tree.walk():
            parent_changed = module.parent is not None and verdicts[module.parent]
            verdicts[module.path] = self._verdict(module.path, diff_paths, parent_changed)
        return dict(sorted(verdicts.items()))

    def module_changed(self, path: str, diff_paths: Sequence[str] | None) -> bool:
        """Verdict for a single module, consistent with :meth:`propagate`."""
        if diff_paths is None:
            self.tree.get(path)
            return True

        chain = [m.path for m in self.tree.ancestors(path)] + [path]
        for current in chain:
            if self.changed_directly(current, diff_paths):
                logger.info("Module %s has changed", current)
                return True
        logger.info("Module %s hasn't changed", path)
        return False


def detect_changes(
    vcs: VersionControl,
    tree: ModuleTree,
    strategy: DiffStrategy,
    default_patterns: Iterable[str],
    explicit_ref: str | None = None,
    previous_build_ref: str | None = None,
) -> ChangeReport:
    resolver = CommitRangeResolver(vcs, previous_build_ref=previous_build_ref)
    commit_range = resolver.resolve(strategy, explicit_ref)
    paths = changed_paths(vcs, commit_range)
    verdicts = ChangePropagator(tree, default_patterns).propagate(paths)
    return ChangeReport(
        root=tree.root,
        strategy=strategy,
        commit_range=commit_range,
        changed_paths=paths,
        verdicts=verdicts,
    )
