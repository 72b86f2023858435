# src/skillreg/services/project/lockfile.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from skillreg.adapters.fs.path_provider import ProjectPaths
from skillreg.config import const
from skillreg.domain import LockDocument, LockedEntry, now_iso
from skillreg.services import schema
from skillreg.services.fs.safe_io import read_yaml, write_yaml_atomic

_log = logging.getLogger("skillreg.project.lockfile")


class Lockfile:
    """
    .skills.lock: фактически материализованное состояние.

    Файл пишется целиком (temp + rename). Если набор записей не изменился,
    locked_at сохраняется, и повторная синхронизация даёт побайтно тот же файл.
    """

    def __init__(self, paths: ProjectPaths):
        self.paths = paths

    def exists(self) -> bool:
        return self.paths.lockfile_path().exists()

    def read(self) -> Optional[LockDocument]:
        path = self.paths.lockfile_path()
        raw = read_yaml(path)
        if raw is None:
            return None
        doc, _ = schema.load_document(raw, "lock", where=str(path))
        return LockDocument.from_dict(doc)

    def write(self, doc: LockDocument) -> LockDocument:
        previous = self.read()
        if previous is not None and previous.skills == doc.skills:
            doc = LockDocument(locked_at=previous.locked_at, skills=list(doc.skills))
        elif not doc.locked_at:
            doc = LockDocument(locked_at=now_iso(), skills=list(doc.skills))
        data = doc.to_dict()
        schema.validate(data, "lock", where=str(self.paths.lockfile_path()))
        write_yaml_atomic(self.paths.lockfile_path(), data, header=const.LOCKFILE_HEADER)
        _log.debug("lockfile.written", extra={"extra": {"skills": len(doc.skills), "locked_at": doc.locked_at}})
        return doc

    def entries(self) -> list[LockedEntry]:
        doc = self.read()
        return list(doc.skills) if doc else []

    def get(self, slug: str) -> Optional[LockedEntry]:
        doc = self.read()
        return doc.get(slug) if doc else None

    def update(self, entry: LockedEntry) -> LockDocument:
        """Заменяет запись с тем же slug или добавляет новую."""
        current = self.entries()
        if any(e.slug == entry.slug for e in current):
            skills = [entry if e.slug == entry.slug else e for e in current]
        else:
            skills = current + [entry]
        return self.write(LockDocument(locked_at="", skills=skills))

    def remove(self, slug: str) -> bool:
        doc = self.read()
        if doc is None or doc.get(slug) is None:
            return False
        self.write(LockDocument(locked_at="", skills=[e for e in doc.skills if e.slug != slug]))
        return True

    def has_changed(self, slug: str, sha256: str) -> bool:
        locked = self.get(slug)
        return locked is None or locked.sha256 != sha256

    def rename(self, slug: str, new_slug: str) -> bool:
        doc = self.read()
        if doc is None or doc.get(slug) is None:
            return False
        skills = [replace(e, slug=new_slug) if e.slug == slug else e for e in doc.skills]
        self.write(LockDocument(locked_at="", skills=skills))
        return True
