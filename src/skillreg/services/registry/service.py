# src/skillreg/services/registry/service.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional, Sequence, Union

from skillreg.adapters.fs.path_provider import RegistryPaths
from skillreg.domain import (
    Provenance,
    PublishResult,
    ResolvedSkill,
    SearchHit,
    SkillInfo,
    SkillMetadata,
    VersionEntry,
    now_iso,
    slugify,
    validate_slug,
)
from skillreg.errors import Corrupted, InvalidInput, NotFound
from skillreg.services.fs.safe_io import move_tree
from skillreg.services.registry import semver
from skillreg.services.registry.ledger import VersionLedger
from skillreg.services.registry.metadata import MetadataStore
from skillreg.services.registry.objects import ObjectStore, compute_hash

_log = logging.getLogger("skillreg.registry")

_SEARCH_PRIORITY = {"slug": 0, "name": 1, "tags": 2, "description": 3}


class LocalRegistry:
    """
    Фасад локального реестра: объекты + meta.yaml + (legacy) versions.yaml.

    Навык без versions.yaml работает в режиме одной копии: ограничения версий
    игнорируются, используется только текущий указатель.
    """

    def __init__(self, paths: RegistryPaths):
        self.paths = paths
        self.objects = ObjectStore(paths)
        self.ledger = VersionLedger(paths)
        self.meta = MetadataStore(paths, self.ledger)

    # --- запись ---

    def publish(
        self,
        slug: str,
        content: Union[str, bytes],
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Sequence[str] = (),
        compat: Sequence[str] = (),
        version: Optional[str] = None,
        provenance: Optional[Provenance] = None,
        changelog: Optional[str] = None,
    ) -> PublishResult:
        slug = validate_slug(slug)
        if version is not None:
            version = str(version).strip()
            if not semver.is_valid_version(version):
                raise InvalidInput(f"invalid version '{version}': expected semver like 1.2.3")
        # байты хранятся без перекодирования: контент не обязан быть UTF-8
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)

        # порядок важен: объект -> meta -> ledger -> рабочая копия
        existed = self.objects.object_exists(compute_hash(data))
        sha256 = self.objects.write_object(data)

        previous = self.meta.read_meta(slug)
        meta = SkillMetadata(
            slug=slug,
            name=name or (previous.name if previous else slug),
            description=description if description is not None else (previous.description if previous else None),
            tags=tuple(tags) if tags else (previous.tags if previous else ()),
            compat=tuple(compat) if compat else (previous.compat if previous else ()),
            sha256=sha256,
            updated_at=now_iso(),
        )
        self.meta.write_meta(meta)

        if version is not None:
            self.ledger.add_version_entry(
                slug,
                VersionEntry(version=version, sha256=sha256, provenance=provenance or Provenance(), changelog=changelog),
            )

        self.meta.write_working_copy(slug, data)
        _log.info(
            "skill.published",
            extra={"extra": {"slug": slug, "hash": sha256, "version": version, "dedup": existed}},
        )
        return PublishResult(slug=slug, sha256=sha256, version=version, deduplicated=existed)

    def delete(self, slug: str) -> bool:
        removed = self.meta.delete_skill(validate_slug(slug))
        if removed:
            _log.info("skill.deleted", extra={"extra": {"slug": slug}})
        return removed

    def rename(self, slug: str, new_name: str) -> SkillMetadata:
        """Новое название; slug выводится из него. Каталог навыка переносится целиком (meta, ledger, SKILL.md)."""
        slug = validate_slug(slug)
        meta = self.meta.read_meta(slug)
        if meta is None:
            raise NotFound(f"skill '{slug}' not found in local registry")
        new_name = (new_name or "").strip()
        try:
            new_slug = validate_slug(slugify(new_name))
        except InvalidInput as exc:
            raise InvalidInput(f"cannot derive a slug from '{new_name}': {exc}") from exc
        if new_slug != slug:
            if self.exists(new_slug):
                raise InvalidInput(f"skill '{new_slug}' already exists in local registry")
            move_tree(self.paths.skill_dir(slug), self.paths.skill_dir(new_slug))
        renamed = replace(meta, slug=new_slug, name=new_name, updated_at=now_iso())
        self.meta.write_meta(renamed)
        _log.info("skill.renamed", extra={"extra": {"from": slug, "to": new_slug, "name": new_name}})
        return renamed

    # --- чтение ---

    def exists(self, slug: str) -> bool:
        return self.meta.exists(slug)

    def has_ledger(self, slug: str) -> bool:
        return self.ledger.has_ledger(slug)

    def _load(self, meta: SkillMetadata, sha256: str, version: Optional[str], provenance: Optional[Provenance]) -> ResolvedSkill:
        data = self.objects.read_object(sha256)
        if data is None:
            state = "corrupted" if self.objects.object_exists(sha256) else "missing"
            raise Corrupted(f"object {sha256[:12]} for '{meta.slug}' is {state}", sha256=sha256)
        return ResolvedSkill(meta=meta, content=data, sha256=sha256, version=version, provenance=provenance)

    def get_current(self, slug: str) -> Optional[ResolvedSkill]:
        """Контент по текущему указателю. None, если навыка нет; Corrupted, если объект испорчен."""
        meta = self.meta.read_meta(slug)
        if meta is None or not meta.sha256:
            return None
        entry = self._entry_for_hash(slug, meta.sha256)
        return self._load(
            meta,
            meta.sha256,
            entry.version if entry else None,
            entry.provenance if entry else None,
        )

    def get_version(self, slug: str, version: str) -> Optional[ResolvedSkill]:
        meta = self.meta.read_meta(slug)
        entry = self.ledger.get_entry(slug, version)
        if meta is None or entry is None:
            return None
        return self._load(meta, entry.sha256, entry.version, entry.provenance)

    def _entry_for_hash(self, slug: str, sha256: str) -> Optional[VersionEntry]:
        for e in self.ledger.all(slug):
            if e.sha256 == sha256:
                return e
        return None

    def resolve(self, slug: str, constraint: Optional[str] = None) -> Optional[str]:
        return self.ledger.resolve_version(slug, constraint)

    def versions(self, slug: str) -> list[str]:
        return self.ledger.version_strings(slug)

    def info(self, slug: str) -> SkillInfo:
        meta = self.meta.read_meta(slug)
        if meta is None:
            raise NotFound(f"skill '{slug}' not found in local registry")
        return SkillInfo(meta=meta, versions=tuple(self.ledger.all(slug)))

    def list_skills(self) -> list[SkillMetadata]:
        out: list[SkillMetadata] = []
        for slug in self.meta.list_slugs():
            meta = self.meta.read_meta(slug)
            if meta is not None:
                out.append(meta)
        return out

    def search(self, query: str) -> list[SearchHit]:
        q = (query or "").strip().lower()
        hits: list[SearchHit] = []
        for meta in self.list_skills():
            matched = _match(meta, q)
            if matched:
                hits.append(SearchHit(meta=meta, matched_on=matched))
        # сортировка стабильна: внутри одного приоритета сохраняется порядок по slug
        hits.sort(key=lambda h: _SEARCH_PRIORITY[h.matched_on])
        return hits

    def filter_by_tags(self, tags: Iterable[str]) -> list[SkillMetadata]:
        wanted = {t.lower() for t in tags}
        return [m for m in self.list_skills() if any(t.lower() in wanted for t in m.tags)]

    def filter_by_compat(self, compat: Iterable[str]) -> list[SkillMetadata]:
        wanted = {c.lower() for c in compat}
        return [m for m in self.list_skills() if any(c.lower() in wanted for c in m.compat)]

    def cache_remote(self, slug: str, version: str, content: bytes, *, source: str, meta: Optional[SkillMetadata] = None) -> PublishResult:
        """Кладёт полученную с удалённого реестра версию в локальный кэш."""
        provenance = Provenance(kind="remote", source=source, fetched_at=now_iso())
        base = meta or self.meta.read_meta(slug)
        return self.publish(
            slug,
            content,
            name=base.name if base else None,
            description=base.description if base else None,
            tags=base.tags if base else (),
            compat=base.compat if base else (),
            version=version,
            provenance=provenance,
        )


def _match(meta: SkillMetadata, q: str) -> Optional[str]:
    if q in meta.slug.lower():
        return "slug"
    if q in meta.name.lower():
        return "name"
    if any(q in t.lower() for t in meta.tags):
        return "tags"
    if meta.description and q in meta.description.lower():
        return "description"
    return None
