# src/skillreg/services/project/config.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from skillreg.adapters.fs.path_provider import ProjectPaths
from skillreg.config import const
from skillreg.domain import ProjectConfig, ProjectEntry, SkillSource
from skillreg.services import schema
from skillreg.services.fs.safe_io import read_yaml, write_yaml_atomic

_log = logging.getLogger("skillreg.project.config")


def _is_legacy_source(src: Any) -> bool:
    # старый формат: {name, registry, url} без kind
    return isinstance(src, dict) and "kind" not in src and "registry" in src and "url" in src


def _has_legacy_sources(doc: Dict[str, Any]) -> bool:
    return any(_is_legacy_source(s) for s in doc.get("sources") or [])


def _convert_legacy_sources(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc["sources"] = [dict(s, kind="cloud") if _is_legacy_source(s) else s for s in doc.get("sources") or []]
    return doc


def _needs_defaults(doc: Dict[str, Any]) -> bool:
    return doc.get("sources") is None or not doc.get("install_path") or doc.get("skills") is None


def _fill_defaults(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc["sources"] = list(doc.get("sources") or [])
    doc["install_path"] = doc.get("install_path") or const.DEFAULT_INSTALL_PATH
    doc["skills"] = list(doc.get("skills") or [])
    return doc


def _sources_without_kind(doc: Dict[str, Any]) -> bool:
    return any(isinstance(s, dict) and "kind" not in s for s in doc.get("sources") or [])


def _default_kind(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc["sources"] = [dict(s, kind="local") if isinstance(s, dict) and "kind" not in s else s for s in doc["sources"]]
    return doc


CONFIG_MIGRATIONS = (
    schema.Migration("defaults", _needs_defaults, _fill_defaults),
    schema.Migration("legacy_cloud_sources", _has_legacy_sources, _convert_legacy_sources),
    schema.Migration("default_source_kind", _sources_without_kind, _default_kind),
)


class ProjectConfigStore:
    """.skills.yaml: желаемое состояние проекта. Миграции не сохраняются при чтении."""

    def __init__(self, paths: ProjectPaths):
        self.paths = paths

    def exists(self) -> bool:
        return self.paths.config_path().exists()

    def read(self) -> ProjectConfig:
        path = self.paths.config_path()
        raw = read_yaml(path)
        if raw is None:
            return ProjectConfig()
        doc, _ = schema.load_document(raw, "project", where=str(path), migrations=CONFIG_MIGRATIONS)
        return ProjectConfig.from_dict(doc)

    def write(self, config: ProjectConfig) -> None:
        doc = config.to_dict()
        schema.validate(doc, "project", where=str(self.paths.config_path()))
        write_yaml_atomic(self.paths.config_path(), doc)

    def init(self, *, install_path: Optional[str] = None, cloud: Optional[SkillSource] = None) -> ProjectConfig:
        """Создаёт .skills.yaml, если его нет; существующий файл дополняет источником."""
        config = self.read()
        if install_path:
            config.install_path = install_path
        if cloud is not None:
            config.sources = [s for s in config.sources if s.name != cloud.name] + [cloud]
        self.write(config)
        _log.info("project.init", extra={"extra": {"root": str(self.paths.root), "install_path": config.install_path}})
        return config

    def add_entry(self, entry: ProjectEntry) -> ProjectConfig:
        config = self.read()
        if config.find(entry.slug) is not None:
            config.skills = [entry if e.slug == entry.slug else e for e in config.skills]
        else:
            config.skills.append(entry)
        self.write(config)
        return config

    def remove_entry(self, slug: str) -> bool:
        config = self.read()
        kept = [e for e in config.skills if e.slug != slug]
        if len(kept) == len(config.skills):
            return False
        config.skills = kept
        self.write(config)
        return True

    def rename_entry(self, slug: str, new_slug: str) -> bool:
        config = self.read()
        if config.find(slug) is None:
            return False
        config.skills = [replace(e, slug=new_slug) if e.slug == slug else e for e in config.skills]
        self.write(config)
        return True
