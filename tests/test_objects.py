from __future__ import annotations

import logging
import os
import time

import pytest

from skillreg.errors import InvalidInput, IOFailure
from skillreg.services.fs import safe_io
from skillreg.services.registry.maintenance import CacheMaintenance
from skillreg.services.registry.objects import ObjectStore, compute_hash

HELLO_SHA = "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"


@pytest.fixture
def store(paths) -> ObjectStore:
    paths.ensure_tree()
    return ObjectStore(paths)


def test_compute_hash_matches_sha256_of_utf8():
    assert compute_hash("hello") == HELLO_SHA
    assert compute_hash(b"hello") == HELLO_SHA


def test_write_is_idempotent_and_content_addressed(store, paths):
    h1 = store.write_object("hello")
    h2 = store.write_object(b"hello")
    assert h1 == h2 == HELLO_SHA
    assert store.list_objects() == [HELLO_SHA]
    assert paths.object_path(HELLO_SHA).read_bytes() == b"hello"


def test_read_roundtrip_and_missing(store):
    h = store.write_object("# skill\n")
    assert store.read_text(h) == "# skill\n"
    assert store.read_object("0" * 64) is None
    assert store.object_exists(h)
    assert not store.object_exists("0" * 64)


def test_corrupted_object_is_never_returned(store, paths, caplog):
    h = store.write_object("original")
    paths.object_path(h).write_bytes(b"tampered")

    with caplog.at_level(logging.ERROR, logger="skillreg"):
        assert store.read_object(h) is None
    assert any(r.getMessage() == "object.corrupted" for r in caplog.records)
    # файл не чинится и не удаляется
    assert paths.object_path(h).read_bytes() == b"tampered"


def test_verify_reports_only_corrupted(store, paths):
    good = store.write_object("good")
    bad = store.write_object("bad")
    paths.object_path(bad).write_bytes(b"rot")

    assert store.verify_all_objects() == [bad]
    report = CacheMaintenance(store).verify()
    assert report.checked == 2
    assert report.corrupted == [bad]
    assert not report.ok
    assert store.read_object(good) == b"good"


@pytest.mark.parametrize("bad", ["", "abc", "G" * 64, "A" * 64, "../" + "a" * 61])
def test_malformed_hash_is_rejected(store, bad):
    with pytest.raises(InvalidInput):
        store.read_object(bad)


def test_cleanup_removes_only_stale_temp_files(store, paths):
    h = store.write_object("keep me")
    stale = paths.objects_dir() / f"{h}.tmp.123.abc"
    fresh = paths.objects_dir() / f"{h}.tmp.456.def"
    stale.write_bytes(b"partial")
    fresh.write_bytes(b"partial")
    old = time.time() - 2 * 3600
    os.utime(stale, (old, old))

    assert store.list_objects() == [h]
    assert store.cleanup_temp_files(max_age=3600) == 1
    assert not stale.exists()
    assert fresh.exists()
    assert paths.object_path(h).exists()


def test_failed_rename_leaves_no_partial_object(store, paths, monkeypatch):
    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(safe_io.os, "replace", boom)
    with pytest.raises(IOFailure):
        store.write_object("never visible")
    monkeypatch.undo()

    assert list(paths.objects_dir().iterdir()) == []


def test_delete_object(store):
    h = store.write_object("bye")
    assert store.delete_object(h) is True
    assert store.delete_object(h) is False
    assert store.list_objects() == []


def test_cleanup_also_scans_skill_dirs(store, paths):
    skill_dir = paths.skill_dir("alpha")
    skill_dir.mkdir(parents=True)
    meta = paths.meta_path("alpha")
    meta.write_text("slug: alpha\n", encoding="utf-8")
    orphan = skill_dir / "meta.yaml.tmp.99.xyz"
    orphan.write_bytes(b"half")
    old = time.time() - 2 * 3600
    os.utime(orphan, (old, old))

    assert CacheMaintenance(store).clean(max_age=3600) == 1
    assert not orphan.exists()
    assert meta.exists()
