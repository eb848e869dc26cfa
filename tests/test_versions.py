import threading
import time

import semver

from blast_radius.versions import VersionTagIndex, parse_version


def test_all_versions_sorted_and_invalid_tags_dropped(repo_factory):
    repo = repo_factory(
        tags={"1.0.1": "c3", "release-2": "c2", "0.0.1": "c1", "1.0.0": "c2", "v2.0.0": "c4", "1.0": "c2"}
    )
    index = VersionTagIndex(repo)
    assert [str(v) for v in index.all_versions()] == ["0.0.1", "1.0.0", "1.0.1"]


def test_all_versions_orders_prereleases_before_release(repo_factory):
    repo = repo_factory(tags={"1.0.0": "c3", "1.0.0-rc.1": "c2", "1.0.0-alpha": "c1", "0.9.0": "c0"})
    index = VersionTagIndex(repo)
    assert [str(v) for v in index.all_versions()] == ["0.9.0", "1.0.0-alpha", "1.0.0-rc.1", "1.0.0"]


def test_all_versions_collapses_build_metadata_duplicates(repo_factory):
    repo = repo_factory(tags={"1.0.0+build.1": "c1", "1.0.0+build.2": "c2", "1.1.0": "c3"})
    versions = VersionTagIndex(repo).all_versions()
    assert len(versions) == 2
    assert versions[0] < versions[1]


def test_tags_on_head_uses_peeled_ids(repo_factory):
    repo = repo_factory(head="c3", tags={"1.0.1": "c3", "1.0.0": "c2"})
    repo.add_tag("annotated", "c3", annotated=True)
    repo.add_tag("tree-tag", "c3", peeled=False)
    index = VersionTagIndex(repo)
    assert index.tags_on_head() == {"1.0.1", "annotated"}


def test_head_version_picks_version_tag_on_head(repo_factory):
    repo = repo_factory(head="c3", tags={"latest": "c3", "2.1.0": "c3", "2.0.0": "c2"})
    index = VersionTagIndex(repo)
    assert index.head_version() == semver.Version.parse("2.1.0")
    assert index.head_tag().name == "2.1.0"


def test_head_version_none_when_head_untagged(repo_factory):
    repo = repo_factory(head="c9", tags={"1.0.0": "c2"})
    assert VersionTagIndex(repo).head_version() is None


def test_head_version_is_memoized(repo_factory):
    repo = repo_factory(head="c3", tags={"1.0.0": "c3"})
    index = VersionTagIndex(repo)

    first = index.head_version()
    repo.head = "c4"
    second = index.head_version()

    assert first == second == semver.Version.parse("1.0.0")
    assert repo.calls["current_head"] == 1
    assert repo.calls["list_tags"] == 1


def test_fresh_index_recomputes(repo_factory):
    repo = repo_factory(head="c3", tags={"1.0.0": "c3"})
    assert VersionTagIndex(repo).head_version() is not None
    repo.head = "c4"
    assert VersionTagIndex(repo).head_version() is None


def test_parse_version_rejects_non_semver():
    assert parse_version("1.2.3") == semver.Version.parse("1.2.3")
    assert parse_version("v1.2.3") is None
    assert parse_version("1.2") is None
    assert parse_version("nightly") is None


def test_tag_for_version(repo_factory):
    repo = repo_factory(tags={"1.0.0": "c1", "1.1.0": "c2"})
    index = VersionTagIndex(repo)
    assert index.tag_for(semver.Version.parse("1.1.0")).peeled == "c2"
    assert index.tag_for(semver.Version.parse("9.9.9")) is None


def test_head_version_takes_lowest_version_on_head(repo_factory):
    repo = repo_factory(head="c3", tags={"8.0.0": "c2", "10.0.0": "c3", "9.0.0": "c3"})
    index = VersionTagIndex(repo)
    assert index.head_version() == semver.Version.parse("9.0.0")
    assert index.head_tag().name == "9.0.0"


def test_head_version_single_lookup_across_threads(repo_factory):
    class SlowRepository(repo_factory):
        def current_head(self):
            time.sleep(0.05)
            return super().current_head()

    repo = SlowRepository(head="c3", tags={"1.0.0": "c2", "1.1.0": "c3"})
    index = VersionTagIndex(repo)
    start = threading.Barrier(8)
    results = []

    def worker():
        start.wait()
        results.append((index.head_version(), index.head_tag()))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 8
    assert set(results) == {(semver.Version.parse("1.1.0"), repo.tags["1.1.0"])}
    assert repo.calls["current_head"] == 1
    assert repo.calls["list_tags"] == 1
