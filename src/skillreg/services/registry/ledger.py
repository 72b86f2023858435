# src/skillreg/services/registry/ledger.py
from __future__ import annotations

import logging
from typing import Optional

from skillreg.adapters.fs.path_provider import RegistryPaths
from skillreg.domain import Provenance, VersionEntry
from skillreg.services import schema
from skillreg.services.fs.safe_io import read_yaml, write_yaml_atomic
from skillreg.services.registry import semver

_log = logging.getLogger("skillreg.registry.ledger")


def _missing_provenance(doc: dict) -> bool:
    return any(isinstance(v, dict) and not v.get("provenance") for v in doc.get("versions") or [])


def _default_provenance(doc: dict) -> dict:
    for v in doc.get("versions") or []:
        if isinstance(v, dict) and not v.get("provenance"):
            v["provenance"] = Provenance().to_dict()
    return doc


LEDGER_MIGRATIONS = (
    schema.CAMEL_TO_SNAKE,
    schema.Migration("default_provenance", _missing_provenance, _default_provenance),
)


class VersionLedger:
    """
    Упорядоченная история версий навыка (legacy-схема, versions.yaml).
    Инварианты: не более одной записи на строку версии; список отсортирован
    по убыванию semver, невалидные версии в конце.
    """

    def __init__(self, paths: RegistryPaths):
        self.paths = paths

    def has_ledger(self, slug: str) -> bool:
        return self.paths.versions_path(slug).exists()

    def read(self, slug: str) -> Optional[list[VersionEntry]]:
        path = self.paths.versions_path(slug)
        raw = read_yaml(path)
        if raw is None and not path.exists():
            return None
        doc, applied = schema.load_document(raw or {"versions": []}, "versions", where=str(path), migrations=LEDGER_MIGRATIONS)
        if applied:
            write_yaml_atomic(path, doc)
            _log.info("ledger.migrated", extra={"extra": {"slug": slug, "migrations": applied}})
        return [VersionEntry.from_dict(v) for v in doc["versions"]]

    def write(self, slug: str, entries: list[VersionEntry]) -> None:
        ordered = sorted(entries, key=lambda e: semver.version_sort_key(e.version))
        write_yaml_atomic(self.paths.versions_path(slug), {"versions": [e.to_dict() for e in ordered]})

    def all(self, slug: str) -> list[VersionEntry]:
        return self.read(slug) or []

    def add_version_entry(self, slug: str, entry: VersionEntry) -> None:
        """Upsert по точной строке версии, затем пересортировка."""
        entries = [e for e in self.all(slug) if e.version != entry.version]
        entries.append(entry)
        self.write(slug, entries)
        _log.debug("ledger.upsert", extra={"extra": {"slug": slug, "version": entry.version}})

    def remove_version_entry(self, slug: str, version: str) -> bool:
        entries = self.read(slug)
        if not entries:
            return False
        kept = [e for e in entries if e.version != version]
        if len(kept) == len(entries):
            return False
        self.write(slug, kept)
        return True

    def get_entry(self, slug: str, version: str) -> Optional[VersionEntry]:
        for e in self.all(slug):
            if e.version == version:
                return e
        return None

    def version_exists(self, slug: str, version: Optional[str]) -> bool:
        return bool(version) and self.get_entry(slug, version) is not None

    def version_strings(self, slug: str) -> list[str]:
        return semver.sort_versions_desc(e.version for e in self.all(slug))

    def latest_version(self, slug: str) -> Optional[str]:
        return semver.resolve_version(self.version_strings(slug))

    def latest_entry(self, slug: str) -> Optional[VersionEntry]:
        latest = self.latest_version(slug)
        return self.get_entry(slug, latest) if latest else None

    def count(self, slug: str) -> int:
        return len(self.all(slug))

    def resolve_version(self, slug: str, constraint: Optional[str] = None) -> Optional[str]:
        versions = self.version_strings(slug)
        if not versions:
            return None
        return semver.resolve_version(versions, constraint)
