from __future__ import annotations

import logging

from blast_radius.git_scope import HEAD, VersionControl
from blast_radius.models import CommitRange, ConfigurationError, DiffStrategy, TagRef
from blast_radius.versions import VersionTagIndex

logger = logging.getLogger(__name__)

PREVIOUS_COMMIT_REF = "HEAD~1"

# Names used by earlier releases of the tool, still accepted in config files.
LEGACY_STRATEGY_NAMES = {
    "JENKINS_LAST_COMMIT": DiffStrategy.LAST_SUCCESSFUL_BUILD,
    "SPECIFIC_COMMIT": DiffStrategy.EXPLICIT_COMMIT,
}


def parse_strategy(value: str | DiffStrategy) -> DiffStrategy:
    if isinstance(value, DiffStrategy):
        return value
    raw = (value or "").strip()
    key = raw.upper().replace("-", "_")
    if key in LEGACY_STRATEGY_NAMES:
        return LEGACY_STRATEGY_NAMES[key]
    for strategy in DiffStrategy:
        if key == strategy.name:
            return strategy
    choices = ", ".join(s.value for s in DiffStrategy)
    raise ConfigurationError(f"Unknown diff strategy '{raw}' (expected one of: {choices})")


def _tag_commit(tag: TagRef) -> str:
    return tag.peeled or tag.commit


class CommitRangeResolver:
    """Turns a diff strategy into the pair of commits to diff.

    Every strategy except EXPLICIT_COMMIT degrades to None when no safe range
    exists; None means the change set is undetermined and everything should be
    treated as changed. EXPLICIT_COMMIT raises ConfigurationError instead.
    """

    def __init__(
        self,
        vcs: VersionControl,
        previous_build_ref: str | None = None,
        versions: VersionTagIndex | None = None,
    ) -> None:
        self.vcs = vcs
        self.previous_build_ref = previous_build_ref
        self.versions = versions if versions is not None else VersionTagIndex(vcs)

    def resolve(self, strategy: DiffStrategy, explicit_ref: str | None = None) -> CommitRange | None:
        if strategy is DiffStrategy.LAST_SUCCESSFUL_BUILD:
            return self._from_last_successful_build()
        if strategy is DiffStrategy.PREVIOUS_TAG:
            return self._from_previous_tag()
        if strategy is DiffStrategy.PREVIOUS_COMMIT:
            return self._from_previous_commit()
        if strategy is DiffStrategy.EXPLICIT_COMMIT:
            return self._from_explicit_commit(explicit_ref)
        raise ConfigurationError(f"Unsupported diff strategy: {strategy!r}")

    def _from_last_successful_build(self) -> CommitRange | None:
        ref = (self.previous_build_ref or "").strip()
        if not ref:
            logger.info("No previous successful build reference available")
            return None

        previous = self.vcs.resolve_reference(ref)
        if previous is None:
            # e.g. the previous build's commit was rewritten by a rebase
            logger.warning("Previous successful build reference %s does not resolve to a commit", ref)
            return None
        return CommitRange(previous=previous, current=self.vcs.current_head())

    def _from_previous_commit(self) -> CommitRange | None:
        logger.info("Comparing to previous head")
        previous = self.vcs.resolve_reference(PREVIOUS_COMMIT_REF)
        if previous is None:
            logger.info("%s has no parent commit", HEAD)
            return None
        return CommitRange(previous=previous, current=self.vcs.current_head())

    def _from_previous_tag(self) -> CommitRange | None:
        entries = self.versions.entries()
        head_tag = self.versions.head_tag()

        if head_tag is not None:
            head_version = self.versions.head_version()
            logger.info("Current version: %s", head_version)

            index = next(i for i, e in enumerate(entries) if e.tag.name == head_tag.name)
            for entry in reversed(entries[:index]):
                if entry.version < head_version:
                    logger.info("Prev version: %s", entry.version)
                    return CommitRange(previous=_tag_commit(entry.tag), current=_tag_commit(head_tag))

            logger.info("Version %s is the first tagged release", head_version)
            return None

        if not entries:
            logger.info("No version tags in repository")
            return None

        latest = entries[-1]
        logger.info("Prev version: %s", latest.version)
        return CommitRange(previous=_tag_commit(latest.tag), current=self.vcs.current_head())

    def _from_explicit_commit(self, explicit_ref: str | None) -> CommitRange:
        ref = (explicit_ref or "").strip()
        if not ref:
            raise ConfigurationError(
                f"previous commit must be specified if the {DiffStrategy.EXPLICIT_COMMIT.value} diff strategy is used"
            )

        previous = self.vcs.resolve_reference(ref)
        if previous is None:
            raise ConfigurationError(f"Previous commit '{ref}' does not resolve to a commit")
        return CommitRange(previous=previous, current=self.vcs.current_head())
