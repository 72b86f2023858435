from __future__ import annotations

import pytest

from skillreg.domain import LockedEntry, ProjectEntry, SkillSource
from skillreg.errors import InvalidInput, NotFound
from skillreg.ports.remote import RemoteError
from skillreg.services.project.config import ProjectConfigStore
from skillreg.services.registry.objects import compute_hash
from skillreg.services.sync.engine import SyncEngine

from conftest import skill_doc

TEAM = SkillSource(name="team", kind="cloud", registry="acme", url="https://skills.example")


@pytest.fixture
def cloud_project(project):
    ProjectConfigStore(project).init(cloud=TEAM)
    return project


@pytest.fixture
def cloud_engine(registry, cloud_project, remote) -> SyncEngine:
    return SyncEngine(registry, cloud_project, {"team": remote})


def test_sync_fetches_missing_skill_into_cache(cloud_engine, registry, cloud_project, remote):
    remote.add("shared", "1.0.0", skill_doc("Shared"))
    remote.add("shared", "1.1.0", skill_doc("Shared", body="Improved."))
    ProjectConfigStore(cloud_project).add_entry(ProjectEntry(slug="shared", source="team", version="^1.0.0"))

    report = cloud_engine.sync()
    assert report.updated == ["shared"]

    entry = registry.ledger.get_entry("shared", "1.1.0")
    assert entry.provenance.kind == "remote"
    assert entry.provenance.source == "acme"
    assert registry.meta.read_meta("shared").tags == ("remote",)

    locked = cloud_engine.lockfile.get("shared")
    assert (locked.registry, locked.version) == ("acme", "1.1.0")
    assert cloud_project.skill_file_path("shared").read_text(encoding="utf-8") == skill_doc("Shared", body="Improved.")

    # второй sync работает из кэша
    remote.fail_with = RemoteError("offline")
    assert cloud_engine.sync().unchanged == ["shared"]


def test_newer_constraint_fetches_again(cloud_engine, registry, cloud_project, remote):
    remote.add("shared", "1.0.0", "one")
    ProjectConfigStore(cloud_project).add_entry(ProjectEntry(slug="shared", source="team"))
    cloud_engine.sync()

    remote.add("shared", "2.0.0", "two")
    ProjectConfigStore(cloud_project).add_entry(ProjectEntry(slug="shared", source="team", version="^2.0.0"))
    report = cloud_engine.sync()
    assert report.updated == ["shared"]
    assert registry.versions("shared") == ["2.0.0", "1.0.0"]


def test_remote_failure_is_isolated(cloud_engine, registry, cloud_project, remote):
    registry.publish("alpha", "local content")
    store = ProjectConfigStore(cloud_project)
    store.add_entry(ProjectEntry(slug="alpha"))
    store.add_entry(ProjectEntry(slug="shared", source="team"))
    remote.fail_with = RemoteError("connection refused")

    report = cloud_engine.sync()
    assert report.updated == ["alpha"]
    assert len(report.errors) == 1
    err = report.errors[0]
    assert (err.slug, err.kind) == ("shared", "not_found")
    assert "connection refused" in err.reason


def test_tampered_remote_content_is_refused(cloud_engine, registry, cloud_project, remote):
    remote.add("shared", "1.0.0", "payload")
    remote.tamper = True
    ProjectConfigStore(cloud_project).add_entry(ProjectEntry(slug="shared", source="team"))

    report = cloud_engine.sync()
    assert [(e.slug, e.kind) for e in report.errors] == [("shared", "corrupted")]
    assert not registry.exists("shared")


def test_unknown_source_is_invalid_input(cloud_engine, cloud_project):
    ProjectConfigStore(cloud_project).add_entry(ProjectEntry(slug="shared", source="elsewhere"))
    report = cloud_engine.sync()
    assert [(e.slug, e.kind) for e in report.errors] == [("shared", "invalid_input")]


def test_push_bumps_patch_and_updates_project(cloud_engine, registry, cloud_project, remote):
    registry.publish("helper", skill_doc("Helper"), version="1.0.0")
    cloud_engine.add(["helper"])
    edited = skill_doc("Helper", body="Sharper.")
    cloud_project.skill_file_path("helper").write_text(edited, encoding="utf-8")

    result = cloud_engine.push("helper", changelog="sharper")
    assert (result.version, result.registry) == ("1.0.1", "acme")
    assert result.sha256 == compute_hash(edited)
    assert remote.published == [("helper", "1.0.1", edited.encode("utf-8"), "sharper")]

    locked = cloud_engine.lockfile.get("helper")
    assert (locked.version, locked.registry, locked.sha256) == ("1.0.1", "acme", result.sha256)
    assert registry.ledger.get_entry("helper", "1.0.1").provenance.kind == "remote"

    # следующий sync не откатывает опубликованную версию
    assert cloud_engine.sync().ok
    assert cloud_engine.lockfile.get("helper").version == "1.0.1"
    assert cloud_project.skill_file_path("helper").read_text(encoding="utf-8") == edited


def test_push_requires_greater_version(cloud_engine, registry, remote):
    registry.publish("helper", "content", version="1.2.0")
    cloud_engine.add(["helper"])

    with pytest.raises(InvalidInput, match=r"must be greater than current \(1.2.0\)"):
        cloud_engine.push("helper", version="1.1.0")
    with pytest.raises(InvalidInput):
        cloud_engine.push("helper", version="not-a-version")
    assert remote.published == []

    assert cloud_engine.push("helper", version="2.0.0").version == "2.0.0"


def test_push_without_cloud_source(engine, registry):
    registry.publish("helper", "content")
    engine.add(["helper"])
    with pytest.raises(InvalidInput, match="cloud source"):
        engine.push("helper")


def test_push_without_remote_client(registry, cloud_project):
    engine = SyncEngine(registry, cloud_project)
    with pytest.raises(NotFound):
        engine.push("helper")


def test_push_remote_error_propagates(cloud_engine, registry, remote):
    registry.publish("helper", "content")
    cloud_engine.add(["helper"])
    remote.fail_with = RemoteError("unauthorized")
    with pytest.raises(RemoteError):
        cloud_engine.push("helper")
    assert cloud_engine.lockfile.get("helper").version is None


def test_non_utf8_remote_content_is_stored_byte_exact(cloud_engine, registry, cloud_project, remote):
    raw = b"\xff\xfe binary"
    remote.skills["bin"] = {"1.0.0": raw}
    registry.publish("good", "v1")
    store = ProjectConfigStore(cloud_project)
    store.add_entry(ProjectEntry(slug="bin", source="team"))
    store.add_entry(ProjectEntry(slug="good"))

    report = cloud_engine.sync()
    assert report.ok
    assert report.updated == ["bin", "good"]
    assert cloud_project.skill_file_path("bin").read_bytes() == raw
    assert registry.objects.read_object(compute_hash(raw)) == raw
    assert cloud_project.skill_file_path("good").read_text(encoding="utf-8") == "v1"


def test_push_with_unparsable_locked_version_bumps_from_baseline(cloud_engine, registry, remote):
    h = registry.publish("helper", "content").sha256
    cloud_engine.add(["helper"])
    cloud_engine.lockfile.update(LockedEntry(slug="helper", sha256=h, registry="acme", version="draft"))

    result = cloud_engine.push("helper")
    assert result.version == "1.0.1"
    assert remote.published[0][1] == "1.0.1"


@pytest.mark.parametrize("slug", ["..", "../escape", "Bad Slug"])
def test_push_rejects_malformed_slug(cloud_engine, remote, slug):
    with pytest.raises(InvalidInput):
        cloud_engine.push(slug)
    assert remote.published == []
