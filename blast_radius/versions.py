from __future__ import annotations

from dataclasses import dataclass
import logging
import threading

import semver

from blast_radius.git_scope import VersionControl
from blast_radius.models import TagRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionedTag:
    version: semver.Version
    tag: TagRef


def parse_version(name: str) -> semver.Version | None:
    try:
        return semver.Version.parse(name)
    except (ValueError, TypeError):
        return None


class VersionTagIndex:
    """Semantic versions carried by the repository's tags.

    One index is built per invocation. The tag listing, the ordered version list
    and the head version are each computed at most once and reused afterwards,
    so the index assumes the tag set does not change while it is alive.
    """

    def __init__(self, vcs: VersionControl) -> None:
        self._vcs = vcs
        self._lock = threading.Lock()
        self._tags: dict[str, TagRef] | None = None
        self._entries: list[VersionedTag] | None = None
        self._head_resolved = False
        self._head_entry: VersionedTag | None = None

    def tags(self) -> dict[str, TagRef]:
        with self._lock:
            return self._load_tags()

    def _load_tags(self) -> dict[str, TagRef]:
        if self._tags is None:
            self._tags = dict(self._vcs.list_tags())
        return self._tags

    def entries(self) -> list[VersionedTag]:
        """Versioned tags sorted by precedence, then by tag name."""
        with self._lock:
            return list(self._load_entries())

    def _load_entries(self) -> list[VersionedTag]:
        if self._entries is None:
            entries = []
            for name, tag in self._load_tags().items():
                version = parse_version(name)
                if version is None:
                    logger.debug("Tag %s is not a semantic version, skipping", name)
                    continue
                entries.append(VersionedTag(version=version, tag=tag))
            entries.sort(key=lambda e: (e.version, e.tag.name))
            self._entries = entries
        return self._entries

    def all_versions(self) -> list[semver.Version]:
        out: list[semver.Version] = []
        for entry in self.entries():
            # build metadata does not take part in precedence
            if out and out[-1] == entry.version:
                continue
            out.append(entry.version)
        return out

    def tag_for(self, version: semver.Version) -> TagRef | None:
        for entry in self.entries():
            if entry.version == version:
                return entry.tag
        return None

    def tags_on_head(self) -> set[str]:
        head = self._vcs.current_head()
        logger.info("Head is %s", head)
        out = set()
        for name, tag in self.tags().items():
            matches = tag.peeled is not None and tag.peeled == head
            logger.debug("Comparing %s to %s : result %s", tag.peeled, head, matches)
            if matches:
                out.add(name)
        return out

    def _head_versioned_tag(self) -> VersionedTag | None:
        with self._lock:
            if self._head_resolved:
                return self._head_entry
            # computed under the lock so concurrent callers see a single lookup
            head = self._vcs.current_head()
            on_head = sorted(
                name for name, tag in self._load_tags().items() if tag.peeled is not None and tag.peeled == head
            )
            logger.debug("Tags on head %d", len(on_head))
            candidates = []
            for name in on_head:
                version = parse_version(name)
                if version is None:
                    logger.debug("Tag on head %s is not a semantic version", name)
                    continue
                candidates.append(VersionedTag(version=version, tag=self._tags[name]))
            # lowest precedence wins so a release never pairs with a tag on its own commit
            entry = min(candidates, key=lambda e: (e.version, e.tag.name), default=None)
            self._head_entry = entry
            self._head_resolved = True
            return entry

    def head_version(self) -> semver.Version | None:
        entry = self._head_versioned_tag()
        return entry.version if entry is not None else None

    def head_tag(self) -> TagRef | None:
        entry = self._head_versioned_tag()
        return entry.tag if entry is not None else None
