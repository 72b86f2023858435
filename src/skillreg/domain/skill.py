# src/skillreg/domain/skill.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from skillreg.domain.types import now_iso


@dataclass(frozen=True, slots=True)
class Provenance:
    kind: str = "local"  # local | remote | import
    source: str = "created"
    fetched_at: Optional[str] = None
    published_by: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind, "source": self.source}
        if self.fetched_at:
            data["fetched_at"] = self.fetched_at
        if self.published_by:
            data["published_by"] = self.published_by
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Provenance":
        data = data or {}
        return cls(
            kind=str(data.get("kind") or "local"),
            source=str(data.get("source") or "created"),
            fetched_at=data.get("fetched_at"),
            published_by=data.get("published_by"),
        )


@dataclass(frozen=True, slots=True)
class SkillMetadata:
    """Описание навыка в реестре; ``sha256`` это единственный указатель на текущий контент."""

    slug: str
    name: str
    description: Optional[str] = None
    tags: tuple[str, ...] = ()
    compat: tuple[str, ...] = ()
    sha256: Optional[str] = None
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"slug": self.slug, "name": self.name}
        if self.description is not None:
            data["description"] = self.description
        data["tags"] = list(self.tags)
        data["compat"] = list(self.compat)
        if self.sha256 is not None:
            data["sha256"] = self.sha256
        data["updated_at"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SkillMetadata":
        return cls(
            slug=str(data["slug"]),
            name=str(data.get("name") or data["slug"]),
            description=data.get("description"),
            tags=tuple(data.get("tags") or ()),
            compat=tuple(data.get("compat") or ()),
            sha256=data.get("sha256"),
            updated_at=str(data.get("updated_at") or now_iso()),
        )

    def with_hash(self, sha256: str) -> "SkillMetadata":
        return replace(self, sha256=sha256)


@dataclass(frozen=True, slots=True)
class VersionEntry:
    version: str
    sha256: str
    created_at: str = field(default_factory=now_iso)
    provenance: Provenance = field(default_factory=Provenance)
    changelog: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "sha256": self.sha256,
            "created_at": self.created_at,
            "provenance": self.provenance.to_dict(),
        }
        if self.changelog:
            data["changelog"] = self.changelog
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VersionEntry":
        return cls(
            version=str(data["version"]),
            sha256=str(data["sha256"]),
            created_at=str(data.get("created_at") or now_iso()),
            provenance=Provenance.from_dict(data.get("provenance")),
            changelog=data.get("changelog"),
        )


@dataclass(frozen=True, slots=True)
class ResolvedSkill:
    """Контент + метаданные, прочитанные из реестра и проверенные по хэшу."""

    meta: SkillMetadata
    content: bytes
    sha256: str
    version: Optional[str] = None
    provenance: Optional[Provenance] = None

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@dataclass(frozen=True, slots=True)
class InstalledSkillMeta:
    """Денормализованная копия метаданных рядом с материализованным SKILL.md."""

    slug: str
    registry: str
    name: str
    sha256: str
    version: Optional[str] = None
    description: Optional[str] = None
    tags: tuple[str, ...] = ()
    compat: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"slug": self.slug, "registry": self.registry}
        if self.version is not None:
            data["version"] = self.version
        data["name"] = self.name
        if self.description is not None:
            data["description"] = self.description
        data["tags"] = list(self.tags)
        data["compat"] = list(self.compat)
        data["sha256"] = self.sha256
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InstalledSkillMeta":
        return cls(
            slug=str(data["slug"]),
            registry=str(data.get("registry") or "local"),
            name=str(data.get("name") or data["slug"]),
            sha256=str(data["sha256"]),
            version=data.get("version"),
            description=data.get("description"),
            tags=tuple(data.get("tags") or ()),
            compat=tuple(data.get("compat") or ()),
        )

    @classmethod
    def from_resolved(cls, resolved: ResolvedSkill, *, registry: str) -> "InstalledSkillMeta":
        meta = resolved.meta
        return cls(
            slug=meta.slug,
            registry=registry,
            name=meta.name,
            sha256=resolved.sha256,
            version=resolved.version,
            description=meta.description,
            tags=meta.tags,
            compat=meta.compat,
        )


@dataclass(frozen=True, slots=True)
class SkillInfo:
    meta: SkillMetadata
    versions: tuple[VersionEntry, ...] = ()

    @property
    def latest(self) -> Optional[VersionEntry]:
        return self.versions[0] if self.versions else None


@dataclass(frozen=True, slots=True)
class SearchHit:
    meta: SkillMetadata
    matched_on: str  # slug | name | tags | description

    @property
    def slug(self) -> str:
        return self.meta.slug
