# src/skillreg/domain/project.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from skillreg.config import const


@dataclass(frozen=True, slots=True)
class SkillSource:
    name: str
    kind: str = "local"  # local | cloud
    registry: Optional[str] = None
    url: Optional[str] = None

    @property
    def is_cloud(self) -> bool:
        return self.kind == "cloud"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "kind": self.kind}
        if self.registry:
            data["registry"] = self.registry
        if self.url:
            data["url"] = self.url
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SkillSource":
        return cls(
            name=str(data["name"]),
            kind=str(data.get("kind") or "local"),
            registry=data.get("registry"),
            url=data.get("url"),
        )


@dataclass(frozen=True, slots=True)
class ProjectEntry:
    """Желаемое состояние: какой навык нужен проекту и с каким ограничением версии."""

    slug: str
    source: Optional[str] = None
    version: Optional[str] = None  # semver constraint or exact version

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"slug": self.slug}
        if self.source:
            data["source"] = self.source
        if self.version:
            data["version"] = self.version
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProjectEntry":
        version = data.get("version")
        return cls(
            slug=str(data["slug"]),
            source=data.get("source"),
            version=str(version) if version is not None else None,
        )


@dataclass(slots=True)
class ProjectConfig:
    sources: list[SkillSource] = field(default_factory=lambda: [SkillSource(name=const.DEFAULT_SOURCE_NAME)])
    install_path: str = const.DEFAULT_INSTALL_PATH
    skills: list[ProjectEntry] = field(default_factory=list)

    def find(self, slug: str) -> Optional[ProjectEntry]:
        for entry in self.skills:
            if entry.slug == slug:
                return entry
        return None

    def default_source(self) -> Optional[SkillSource]:
        # локальный источник предпочтительнее, иначе первый
        for src in self.sources:
            if not src.is_cloud:
                return src
        return self.sources[0] if self.sources else None

    def source_for(self, entry: ProjectEntry) -> Optional[SkillSource]:
        if entry.source:
            for src in self.sources:
                if src.name == entry.source:
                    return src
            return None
        return self.default_source()

    def cloud_sources(self) -> list[SkillSource]:
        return [s for s in self.sources if s.is_cloud]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sources": [s.to_dict() for s in self.sources],
            "install_path": self.install_path,
            "skills": [e.to_dict() for e in self.skills],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProjectConfig":
        return cls(
            sources=[SkillSource.from_dict(s) for s in data.get("sources") or []],
            install_path=str(data.get("install_path") or const.DEFAULT_INSTALL_PATH),
            skills=[ProjectEntry.from_dict(s) for s in data.get("skills") or []],
        )


@dataclass(frozen=True, slots=True)
class LockedEntry:
    """Фактически материализованное состояние навыка (в отличие от желаемого)."""

    slug: str
    sha256: str
    registry: str = const.DEFAULT_SOURCE_NAME
    version: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"slug": self.slug, "registry": self.registry}
        if self.version is not None:
            data["version"] = self.version
        data["sha256"] = self.sha256
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LockedEntry":
        version = data.get("version")
        return cls(
            slug=str(data["slug"]),
            sha256=str(data["sha256"]),
            registry=str(data.get("registry") or const.DEFAULT_SOURCE_NAME),
            version=str(version) if version is not None else None,
        )


@dataclass(slots=True)
class LockDocument:
    locked_at: str
    skills: list[LockedEntry] = field(default_factory=list)

    def get(self, slug: str) -> Optional[LockedEntry]:
        for entry in self.skills:
            if entry.slug == slug:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"locked_at": self.locked_at, "skills": [e.to_dict() for e in self.skills]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LockDocument":
        return cls(
            locked_at=str(data.get("locked_at") or ""),
            skills=[LockedEntry.from_dict(s) for s in data.get("skills") or []],
        )
