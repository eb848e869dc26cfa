from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol
import subprocess

from blast_radius.models import CommitRange, TagRef

logger = logging.getLogger(__name__)

HEAD = "HEAD"


class GitScopeError(RuntimeError):
    pass


class VersionControl(Protocol):
    def resolve_reference(self, ref: str) -> str | None: ...

    def current_head(self) -> str: ...

    def list_tags(self) -> dict[str, TagRef]: ...

    def diff_paths(self, previous: str, current: str) -> list[str]: ...


class GitRepository:
    """VersionControl backed by the git command line of a working tree."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _run(self, *args: str, text: bool = True) -> subprocess.CompletedProcess:
        cmd = ["git", *args]
        try:
            return subprocess.run(
                cmd,
                cwd=str(self.root),
                capture_output=True,
                text=text,
                check=False,
            )
        except FileNotFoundError as exc:
            raise GitScopeError("git is not installed or not available in PATH") from exc

    def resolve_reference(self, ref: str) -> str | None:
        proc = self._run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        if proc.returncode != 0:
            logger.debug("Could not resolve reference %s", ref)
            return None
        out = (proc.stdout or "").strip()
        return out or None

    def current_head(self) -> str:
        head = self.resolve_reference(HEAD)
        if head is None:
            raise GitScopeError(f"Failed to resolve {HEAD} in {self.root}. Is this a git repository with commits?")
        return head

    def current_branch(self) -> str | None:
        proc = self._run("rev-parse", "--abbrev-ref", HEAD)
        if proc.returncode != 0:
            return None
        return (proc.stdout or "").strip() or None

    def list_tags(self) -> dict[str, TagRef]:
        proc = self._run(
            "for-each-ref",
            "--format=%(refname:strip=2) %(objectname) %(objecttype) %(*objectname) %(*objecttype)",
            "refs/tags",
        )
        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            raise GitScopeError(f"Failed to list tags. {stderr or 'Check git history and ref availability.'}")

        tags: dict[str, TagRef] = {}
        for line in (proc.stdout or "").splitlines():
            parts = line.split()
            if len(parts) < 3:
                continue
            name, objectname, objecttype = parts[0], parts[1], parts[2]
            peeled: str | None = None
            if objecttype == "commit":
                # lightweight tag, the ref itself points at the commit
                peeled = objectname
            elif objecttype == "tag" and len(parts) >= 5 and parts[4] == "commit":
                peeled = parts[3]
            elif objecttype == "tag" and len(parts) >= 5 and parts[4] == "tag":
                # tag of a tag, %(*objectname) only dereferences one level
                peeled = self.resolve_reference(f"refs/tags/{name}")
            tags[name] = TagRef(name=name, commit=objectname, peeled=peeled)
        return tags

    def diff_paths(self, previous: str, current: str) -> list[str]:
        # unquoted, NUL separated names so non-ASCII paths come back verbatim
        proc = self._run(
            "-c", "core.quotePath=false", "diff", "--name-only", "-z", "--no-color", previous, current, text=False
        )
        if proc.returncode != 0:
            stderr = (proc.stderr or b"").decode(errors="replace").strip()
            raise GitScopeError(
                f"Failed to diff {previous}..{current}. {stderr or 'Check git history and ref availability.'}"
            )

        out: list[str] = []
        for raw in (proc.stdout or b"").split(b"\0"):
            if not raw:
                continue
            p = os.fsdecode(raw)
            logger.debug("Diff %s", p)
            out.append("/" + p)
        return out


def changed_paths(vcs: VersionControl, commit_range: CommitRange | None) -> list[str] | None:
    """Paths touched between the two commits of ``commit_range``.

    Returns None when the change set is undetermined: either no range could be
    established or the diff itself failed. Callers must treat None as "every
    module changed", never as "no changes".
    """
    if commit_range is None:
        logger.warning("No commit range could be established, treating every module as changed")
        return None

    logger.info("Prev commit id: %s", commit_range.previous)
    logger.info("Current commit id: %s", commit_range.current)
    try:
        return vcs.diff_paths(commit_range.previous, commit_range.current)
    except (GitScopeError, OSError, UnicodeError) as exc:
        logger.warning("Diff %s..%s failed, treating every module as changed: %s", commit_range.previous, commit_range.current, exc)
        return None
