from __future__ import annotations

import pytest
import yaml

from skillreg.adapters.fs.path_provider import ProjectPaths
from skillreg.config import const
from skillreg.domain import InstalledSkillMeta, LockDocument, LockedEntry, ProjectEntry, SkillSource
from skillreg.errors import InvalidInput, IOFailure
from skillreg.services.fs import safe_io
from skillreg.services.project.config import ProjectConfigStore
from skillreg.services.project.index import render_index
from skillreg.services.project.installer import Materializer, read_frontmatter
from skillreg.services.project.lockfile import Lockfile

H1 = "1" * 64
H2 = "2" * 64


# ---------- lockfile ----------


def test_lockfile_write_has_header_and_roundtrips(project):
    lock = Lockfile(project)
    assert lock.read() is None
    written = lock.write(LockDocument(locked_at="", skills=[LockedEntry(slug="alpha", sha256=H1)]))

    text = project.lockfile_path().read_text(encoding="utf-8")
    assert text.startswith(const.LOCKFILE_HEADER)
    assert written.locked_at
    assert lock.read().skills == [LockedEntry(slug="alpha", sha256=H1, registry="local")]


def test_lockfile_keeps_timestamp_when_entries_unchanged(project):
    lock = Lockfile(project)
    first = lock.write(LockDocument(locked_at="2024-01-01T00:00:00+00:00", skills=[LockedEntry(slug="alpha", sha256=H1)]))
    before = project.lockfile_path().read_bytes()

    second = lock.write(LockDocument(locked_at="", skills=[LockedEntry(slug="alpha", sha256=H1)]))
    assert second.locked_at == first.locked_at
    assert project.lockfile_path().read_bytes() == before


def test_lockfile_update_remove_and_has_changed(project):
    lock = Lockfile(project)
    lock.update(LockedEntry(slug="alpha", sha256=H1))
    lock.update(LockedEntry(slug="beta", sha256=H1, version="1.0.0"))
    lock.update(LockedEntry(slug="alpha", sha256=H2))

    assert [e.slug for e in lock.entries()] == ["alpha", "beta"]
    assert lock.get("alpha").sha256 == H2
    assert lock.get("beta").version == "1.0.0"
    assert not lock.has_changed("alpha", H2)
    assert lock.has_changed("alpha", H1)
    assert lock.has_changed("ghost", H1)

    assert lock.remove("alpha") is True
    assert lock.remove("alpha") is False
    assert [e.slug for e in lock.entries()] == ["beta"]


def test_lockfile_rejects_bad_hash(project):
    project.lockfile_path().write_text("locked_at: x\nskills:\n  - {slug: a, registry: local, sha256: nope}\n", encoding="utf-8")
    with pytest.raises(InvalidInput):
        Lockfile(project).read()


def test_lockfile_rejects_path_like_slug(project):
    project.lockfile_path().write_text(f"locked_at: x\nskills:\n  - {{slug: '..', registry: local, sha256: {H1}}}\n", encoding="utf-8")
    with pytest.raises(InvalidInput):
        Lockfile(project).read()


def test_failed_lockfile_write_keeps_previous_file(project, monkeypatch):
    lock = Lockfile(project)
    lock.write(LockDocument(locked_at="", skills=[LockedEntry(slug="alpha", sha256=H1)]))
    before = project.lockfile_path().read_bytes()

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(safe_io.os, "replace", boom)
    with pytest.raises(IOFailure):
        lock.update(LockedEntry(slug="beta", sha256=H2))
    monkeypatch.undo()

    assert project.lockfile_path().read_bytes() == before
    assert [p.name for p in project.root.iterdir() if safe_io.is_temp_artifact(p.name)] == []
    assert [e.slug for e in lock.entries()] == ["alpha"]


# ---------- .skills.yaml ----------


def test_config_rejects_path_like_slug(project):
    project.config_path().write_text("install_path: .claude/skills\nsources: []\nskills:\n  - slug: ..\n", encoding="utf-8")
    with pytest.raises(InvalidInput):
        ProjectConfigStore(project).read()


def test_config_init_defaults(project_root):
    project = ProjectPaths.at(project_root)
    store = ProjectConfigStore(project)
    assert not store.exists()
    config = store.read()
    assert config.install_path == const.DEFAULT_INSTALL_PATH
    assert [s.name for s in config.sources] == ["local"]

    store.init(install_path="skills", cloud=SkillSource(name="team", kind="cloud", registry="acme", url="https://skills.example"))
    on_disk = yaml.safe_load(project.config_path().read_text(encoding="utf-8"))
    assert on_disk["install_path"] == "skills"
    assert on_disk["sources"][1] == {"name": "team", "kind": "cloud", "registry": "acme", "url": "https://skills.example"}


def test_config_add_and_remove_entries(project):
    store = ProjectConfigStore(project)
    store.add_entry(ProjectEntry(slug="alpha"))
    store.add_entry(ProjectEntry(slug="beta", version="^1.0.0"))
    store.add_entry(ProjectEntry(slug="alpha", version="2.0.0"))

    config = store.read()
    assert [(e.slug, e.version) for e in config.skills] == [("alpha", "2.0.0"), ("beta", "^1.0.0")]
    assert store.remove_entry("alpha") is True
    assert store.remove_entry("alpha") is False
    assert [e.slug for e in store.read().skills] == ["beta"]


def test_config_legacy_sources_become_cloud_without_rewrite(project_root):
    project = ProjectPaths.at(project_root)
    legacy = "sources:\n  - name: team\n    registry: acme\n    url: https://skills.example\nskills:\n  - slug: alpha\n    version: 1.0\n"
    project.config_path().write_text(legacy, encoding="utf-8")

    config = ProjectConfigStore(project).read()
    assert config.sources[0].kind == "cloud"
    assert config.install_path == const.DEFAULT_INSTALL_PATH
    # YAML-число 1.0 читается как строка ограничения
    assert config.skills[0].version == "1.0"
    assert project.config_path().read_text(encoding="utf-8") == legacy


def test_config_source_resolution(project):
    store = ProjectConfigStore(project)
    config = store.init(cloud=SkillSource(name="team", kind="cloud", registry="acme", url="u"))
    assert config.default_source().name == "local"
    assert config.source_for(ProjectEntry(slug="a", source="team")).is_cloud
    assert config.source_for(ProjectEntry(slug="a", source="nope")) is None
    assert [s.name for s in config.cloud_sources()] == ["team"]


# ---------- installer / index ----------


def test_materialize_and_list_installed(project):
    materializer = Materializer(project)
    meta = InstalledSkillMeta(slug="alpha", registry="local", name="Alpha", sha256=H1, tags=("db",))
    materializer.materialize(b"# Alpha\n", meta)
    materializer.write_bootstrap()

    assert materializer.is_materialized("alpha")
    assert materializer.read_content("alpha") == "# Alpha\n"
    assert materializer.read_installed_meta("alpha") == meta
    assert materializer.list_installed() == ["alpha"]
    assert (project.system_dir() / const.SKILL_FILE).exists()

    assert materializer.delete("alpha") is True
    assert materializer.list_installed() == []


def test_gitignore_entry_added_once(project):
    materializer = Materializer(project)
    (project.root / ".gitignore").write_text("node_modules/", encoding="utf-8")
    assert materializer.ensure_gitignore() is True
    assert materializer.ensure_gitignore() is False
    text = (project.root / ".gitignore").read_text(encoding="utf-8")
    assert text.startswith("node_modules/\n")
    assert text.count(".claude/skills/") == 1


def test_render_index_sorted_by_slug():
    text = render_index(
        [
            InstalledSkillMeta(slug="zeta", registry="local", name="Zeta", sha256=H1),
            InstalledSkillMeta(slug="alpha", registry="local", name="Alpha", sha256=H2, version="1.2.0", description="Does A"),
        ]
    )
    assert text.startswith("# Skills Index")
    assert text.index("## Alpha") < text.index("## Zeta")
    assert "- version: 1.2.0" in text
    assert "Does A" in text
    assert "_No skills installed._" in render_index([])


def test_read_frontmatter():
    assert read_frontmatter("---\nName: X\nDescription: Helps\n---\n\nbody") == {"name": "X", "description": "Helps"}
    assert read_frontmatter("no header") == {}
    assert read_frontmatter("---\n: [bad\n---\n") == {}
