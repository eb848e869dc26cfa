from __future__ import annotations

import pytest

from blast_radius.git_scope import GitScopeError
from blast_radius.models import TagRef


class FakeRepository:
    """In-memory VersionControl for tests.

    ``refs`` maps symbolic references to commit ids, ``tags`` maps tag names to
    the commit they peel to.
    """

    def __init__(self, head="c3", refs=None, tags=None, diff=None, diff_error=None):
        self.head = head
        self.refs = dict(refs or {})
        self.tags = {}
        for name, commit in (tags or {}).items():
            self.add_tag(name, commit)
        self.diff = list(diff or [])
        self.diff_error = diff_error
        self.calls = {"list_tags": 0, "current_head": 0, "diff_paths": 0}

    def add_tag(self, name, commit, annotated=False, peeled=True):
        object_id = f"tag-{name}" if annotated else commit
        self.tags[name] = TagRef(name=name, commit=object_id, peeled=commit if peeled else None)

    def resolve_reference(self, ref):
        if ref == "HEAD":
            return self.head
        return self.refs.get(ref)

    def current_branch(self):
        return "main"

    def current_head(self):
        self.calls["current_head"] += 1
        return self.head

    def list_tags(self):
        self.calls["list_tags"] += 1
        return dict(self.tags)

    def diff_paths(self, previous, current):
        self.calls["diff_paths"] += 1
        if self.diff_error is not None:
            raise self.diff_error
        return list(self.diff)


@pytest.fixture
def repo_factory():
    return FakeRepository


@pytest.fixture
def broken_diff():
    return GitScopeError("bad object")
