"""
Content-addressed object storage for skill content.

Objects live at ``<registry>/objects/<sha256>`` and are immutable:
- identical content is written once (dedup by key);
- every read re-hashes the bytes and refuses anything that does not match;
- writes go through a temp file + rename, so a half-written object is never visible.
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from typing import Optional, Union

from skillreg.adapters.fs.path_provider import RegistryPaths
from skillreg.config import const
from skillreg.domain.types import validate_hash
from skillreg.errors import IOFailure
from skillreg.services.fs.safe_io import ensure_dir, is_temp_artifact, write_bytes_atomic

_log = logging.getLogger("skillreg.registry.objects")

Content = Union[bytes, str]


def _as_bytes(content: Content) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return bytes(content)


def compute_hash(content: Content) -> str:
    return hashlib.sha256(_as_bytes(content)).hexdigest()


class ObjectStore:
    def __init__(self, paths: RegistryPaths):
        self.paths = paths

    def write_object(self, content: Content) -> str:
        data = _as_bytes(content)
        sha256 = compute_hash(data)
        target = self.paths.object_path(sha256)
        if target.exists():
            _log.debug("object.dedup", extra={"extra": {"hash": sha256}})
            return sha256
        ensure_dir(self.paths.objects_dir())
        write_bytes_atomic(target, data)
        _log.debug("object.written", extra={"extra": {"hash": sha256, "size": len(data)}})
        return sha256

    def read_object(self, sha256: str) -> Optional[bytes]:
        """Возвращает байты объекта или None, если объекта нет либо он повреждён."""
        validate_hash(sha256)
        path = self.paths.object_path(sha256)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise IOFailure("cannot read object", path=str(path)) from exc
        actual = compute_hash(data)
        if actual != sha256:
            _log.error(
                "object.corrupted",
                extra={"extra": {"hash": sha256, "actual": actual, "hint": "run 'skillreg cache verify'"}},
            )
            return None
        return data

    def read_text(self, sha256: str) -> Optional[str]:
        data = self.read_object(sha256)
        return data.decode("utf-8") if data is not None else None

    def object_exists(self, sha256: str) -> bool:
        validate_hash(sha256)
        return self.paths.object_path(sha256).exists()

    def delete_object(self, sha256: str) -> bool:
        validate_hash(sha256)
        path = self.paths.object_path(sha256)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise IOFailure("cannot delete object", path=str(path)) from exc
        return True

    def list_objects(self) -> list[str]:
        root = self.paths.objects_dir()
        if not root.exists():
            return []
        return sorted(p.name for p in root.iterdir() if p.is_file() and not is_temp_artifact(p.name))

    def verify_all_objects(self) -> list[str]:
        """Полный проход по хранилищу. Ничего не чинит, только сообщает."""
        corrupted: list[str] = []
        for sha256 in self.list_objects():
            path = self.paths.object_path(sha256)
            try:
                data = path.read_bytes()
            except OSError:
                corrupted.append(sha256)
                continue
            if compute_hash(data) != sha256:
                corrupted.append(sha256)
        if corrupted:
            _log.warning("object.verify.corrupted", extra={"extra": {"count": len(corrupted), "hashes": corrupted}})
        return corrupted

    def _temp_candidates(self):
        dirs = [self.paths.objects_dir()]
        skills = self.paths.skills_dir()
        if skills.exists():
            dirs.extend(p for p in sorted(skills.iterdir()) if p.is_dir())
        for d in dirs:
            if not d.exists():
                continue
            for p in d.iterdir():
                if is_temp_artifact(p.name):
                    yield p

    def cleanup_temp_files(self, max_age: float = const.TEMP_MAX_AGE_SEC) -> int:
        """Удаляет осиротевшие temp-файлы старше max_age секунд в objects/ и skills/<slug>/."""
        now = time.time()
        cleaned = 0
        for p in list(self._temp_candidates()):
            if not p.is_file():
                continue
            try:
                age = now - p.stat().st_mtime
                if age > max_age:
                    os.unlink(p)
                    cleaned += 1
            except FileNotFoundError:
                # уже переименован параллельной записью
                continue
        if cleaned:
            _log.info("object.temp.cleaned", extra={"extra": {"count": cleaned}})
        return cleaned
