# src/skillreg/services/registry/importer.py
"""
Импорт уже существующих навыков (SKILL.md, команды, AGENTS.md, .cursorrules)
в локальный реестр.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional

from skillreg.config import const
from skillreg.domain import Provenance, SyncReport, slugify
from skillreg.errors import RegistryError
from skillreg.services.fs.safe_io import read_bytes
from skillreg.services.project.installer import read_frontmatter
from skillreg.services.registry import semver
from skillreg.services.registry.service import LocalRegistry

_log = logging.getLogger("skillreg.registry.importer")


@dataclass(frozen=True, slots=True)
class DiscoveredSkill:
    slug: str
    name: str
    content: bytes
    source_path: Path
    description: Optional[str] = None
    tags: tuple[str, ...] = ()
    compat: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ScanLocation:
    path: Path
    pattern: str  # "skill-dirs" | "directory" | "file"


def _as_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(v.strip() for v in value.split(",") if v.strip())
    if isinstance(value, list):
        return tuple(str(v).strip() for v in value if isinstance(v, str) and v.strip())
    return ()


def _discovered(slug: str, path: Path) -> Optional[DiscoveredSkill]:
    slug = slugify(slug)
    if not slug:
        return None
    content = read_bytes(path)
    if content is None:
        return None
    front = read_frontmatter(content)
    name = front.get("name") if isinstance(front.get("name"), str) else None
    description = front.get("description") if isinstance(front.get("description"), str) else None
    return DiscoveredSkill(
        slug=slug,
        name=name or " ".join(w.capitalize() for w in slug.split("-")),
        content=content,
        source_path=path,
        description=description,
        tags=_as_list(front.get("tags")),
        compat=_as_list(front.get("compat")),
    )


def default_locations(root: Path, home: Optional[Path] = None) -> list[ScanLocation]:
    bases = [root] + ([home] if home is not None and home != root else [])
    out: list[ScanLocation] = []
    for base in bases:
        out += [ScanLocation(base / d, "skill-dirs") for d in const.IMPORT_SKILL_DIRS]
        out += [ScanLocation(base / d, "directory") for d in const.IMPORT_MD_DIRS]
    out += [ScanLocation(root / f, "file") for f in const.IMPORT_FILES]
    return out


def location_for(path: Path) -> ScanLocation:
    """Произвольный путь: файл, каталог с <slug>/SKILL.md или каталог с *.md."""
    if path.is_file():
        return ScanLocation(path, "file")
    if any((p / const.SKILL_FILE).exists() for p in path.iterdir() if p.is_dir()):
        return ScanLocation(path, "skill-dirs")
    return ScanLocation(path, "directory")


def scan(location: ScanLocation) -> list[DiscoveredSkill]:
    p = location.path
    if not p.exists():
        return []
    found: list[Optional[DiscoveredSkill]] = []
    if location.pattern == "file":
        found.append(_discovered(p.stem if p.suffix == ".md" else p.name, p))
    elif location.pattern == "skill-dirs":
        for d in sorted(p.iterdir()):
            if d.is_dir() and d.name != const.SYSTEM_DIR and (d / const.SKILL_FILE).is_file():
                found.append(_discovered(d.name, d / const.SKILL_FILE))
    else:
        for f in sorted(p.iterdir()):
            if f.is_file() and f.suffix == ".md":
                found.append(_discovered(f.stem, f))
    return [s for s in found if s is not None]


def discover(locations: Iterable[ScanLocation]) -> list[DiscoveredSkill]:
    """Обходит места по порядку; при совпадении slug остаётся первое найденное."""
    seen: set[str] = set()
    out: List[DiscoveredSkill] = []
    for location in locations:
        for skill in scan(location):
            if skill.slug in seen:
                continue
            seen.add(skill.slug)
            out.append(skill)
    return out


class SkillImporter:
    def __init__(self, registry: LocalRegistry):
        self.registry = registry

    def import_skills(self, skills: Iterable[DiscoveredSkill], *, force: bool = False) -> SyncReport:
        report = SyncReport()
        for skill in skills:
            if self.registry.exists(skill.slug) and not force:
                report.unchanged.append(skill.slug)
                _log.info("import.skipped", extra={"extra": {"slug": skill.slug, "reason": "exists"}})
                continue
            try:
                result = self._import_one(skill)
            except RegistryError as exc:
                report.fail(skill.slug, exc.kind, str(exc))
                continue
            report.updated.append(skill.slug)
            _log.info("import.done", extra={"extra": {"slug": skill.slug, "version": result.version, "path": str(skill.source_path)}})
        return report

    def _import_one(self, skill: DiscoveredSkill):
        # импорт всегда создаёт новую версию; существующие версии не переписываются
        latest = self.registry.ledger.latest_version(skill.slug)
        version = semver.bump_version(latest) if latest else const.DEFAULT_BASELINE_VERSION
        return self.registry.publish(
            skill.slug,
            skill.content,
            name=skill.name,
            description=skill.description,
            tags=skill.tags,
            compat=skill.compat,
            version=version,
            provenance=Provenance(kind="import", source=str(skill.source_path)),
        )
