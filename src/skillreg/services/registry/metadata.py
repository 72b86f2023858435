# src/skillreg/services/registry/metadata.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from skillreg.adapters.fs.path_provider import RegistryPaths
from skillreg.config import const
from skillreg.domain import SkillMetadata
from skillreg.domain.types import now_iso
from skillreg.services import schema
from skillreg.services.fs.safe_io import read_yaml, remove_tree, write_bytes_atomic, write_yaml_atomic
from skillreg.services.registry.ledger import VersionLedger

_log = logging.getLogger("skillreg.registry.metadata")


def _fill_defaults(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc.get("name"):
        doc["name"] = doc.get("slug")
    doc["tags"] = list(doc.get("tags") or [])
    doc["compat"] = list(doc.get("compat") or [])
    if not doc.get("updated_at"):
        doc["updated_at"] = now_iso()
    return doc


def _needs_defaults(doc: Dict[str, Any]) -> bool:
    return any(doc.get(k) is None for k in ("name", "tags", "compat", "updated_at"))


def _stamp(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc["schema"] = const.META_SCHEMA_VERSION
    return doc


class MetadataStore:
    """meta.yaml: текущий указатель (sha256) и описательные поля навыка."""

    def __init__(self, paths: RegistryPaths, ledger: Optional[VersionLedger] = None):
        self.paths = paths
        self.ledger = ledger or VersionLedger(paths)

    def _migrations(self, slug: str) -> tuple[schema.Migration, ...]:
        def needs_backfill(doc: Dict[str, Any]) -> bool:
            return not doc.get("sha256") and self.ledger.has_ledger(slug)

        def backfill(doc: Dict[str, Any]) -> Dict[str, Any]:
            latest = self.ledger.latest_entry(slug)
            if latest is None:
                # в ledger только невалидные версии; берём первую запись
                entries = self.ledger.all(slug)
                latest = entries[0] if entries else None
            if latest is not None:
                doc["sha256"] = latest.sha256
            return doc

        return (
            schema.CAMEL_TO_SNAKE,
            schema.Migration("defaults", _needs_defaults, _fill_defaults),
            schema.Migration("backfill_sha256", needs_backfill, backfill),
            schema.Migration("stamp_schema", lambda d: d.get("schema") != const.META_SCHEMA_VERSION, _stamp),
        )

    def read_meta(self, slug: str) -> Optional[SkillMetadata]:
        path = self.paths.meta_path(slug)
        raw = read_yaml(path)
        if raw is None:
            return None
        doc, applied = schema.load_document(raw, "meta", where=str(path), migrations=self._migrations(slug))
        if applied:
            # миграция при чтении: сохраняем один раз, дальше документ уже текущей схемы
            write_yaml_atomic(path, doc)
            _log.info("meta.migrated", extra={"extra": {"slug": slug, "migrations": applied}})
        return SkillMetadata.from_dict(doc)

    def write_meta(self, meta: SkillMetadata) -> None:
        doc = {"schema": const.META_SCHEMA_VERSION, **meta.to_dict()}
        schema.validate(doc, "meta", where=meta.slug)
        write_yaml_atomic(self.paths.meta_path(meta.slug), doc)

    def write_working_copy(self, slug: str, content: bytes) -> None:
        write_bytes_atomic(self.paths.skill_file_path(slug), content)

    def exists(self, slug: str) -> bool:
        return self.paths.meta_path(slug).exists()

    def list_slugs(self) -> list[str]:
        root = self.paths.skills_dir()
        if not root.exists():
            return []
        return sorted(p.name for p in root.iterdir() if p.is_dir() and (p / const.META_FILE).exists())

    def delete_skill(self, slug: str) -> bool:
        """Удаляет каталог навыка. Объекты остаются: они могут быть общими."""
        return remove_tree(self.paths.skill_dir(slug))
