# src/skillreg/services/project/installer.py
from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Optional, Union

import yaml

from skillreg.adapters.fs.path_provider import ProjectPaths
from skillreg.config import const
from skillreg.domain import InstalledSkillMeta
from skillreg.services import schema
from skillreg.services.fs.safe_io import ensure_dir, move_tree, read_bytes, read_text, read_yaml, remove_tree, write_bytes_atomic, write_text_atomic, write_yaml_atomic

_log = logging.getLogger("skillreg.project.installer")

BOOTSTRAP_DOC = """---
name: skills-discovery
description: How to discover and apply the skills installed in this project
---

# Skills

This project keeps reusable skills next to this file.

1. Read `SKILLS_INDEX.md` in the parent directory to see which skills are installed.
2. When a skill is relevant to the current task, open its `SKILL.md` and follow it.
3. Do not edit installed skills in place unless you intend to save them back
   with `skillreg save <slug>`; `skillreg sync` overwrites local edits.
"""


class Materializer:
    """Раскладывает навыки в <install>/<slug>/ (SKILL.md + meta.yaml)."""

    def __init__(self, paths: ProjectPaths):
        self.paths = paths

    def materialize(self, content: bytes, meta: InstalledSkillMeta) -> None:
        # сначала контент, затем meta: meta без SKILL.md считается неустановленным
        write_bytes_atomic(self.paths.skill_file_path(meta.slug), content)
        write_yaml_atomic(self.paths.installed_meta_path(meta.slug), meta.to_dict())
        _log.debug("skill.materialized", extra={"extra": {"slug": meta.slug, "hash": meta.sha256}})

    def read_installed_meta(self, slug: str) -> Optional[InstalledSkillMeta]:
        path = self.paths.installed_meta_path(slug)
        raw = read_yaml(path)
        if raw is None:
            return None
        doc, _ = schema.load_document(raw, "installed", where=str(path))
        return InstalledSkillMeta.from_dict(doc)

    def read_content(self, slug: str) -> Optional[bytes]:
        # байты как есть: хэш считается по тому же представлению, что и в хранилище объектов
        return read_bytes(self.paths.skill_file_path(slug))

    def is_materialized(self, slug: str) -> bool:
        return self.paths.skill_file_path(slug).exists() and self.paths.installed_meta_path(slug).exists()

    def delete(self, slug: str) -> bool:
        return remove_tree(self.paths.skill_dir(slug))

    def rename(self, slug: str, new_slug: str, name: str) -> bool:
        """Переносит <install>/<slug>/ и обновляет slug/name в его meta.yaml. False, если навык не установлен."""
        if not self.paths.skill_dir(slug).exists():
            return False
        if new_slug != slug:
            move_tree(self.paths.skill_dir(slug), self.paths.skill_dir(new_slug))
        meta = self.read_installed_meta(new_slug)
        if meta is not None:
            write_yaml_atomic(self.paths.installed_meta_path(new_slug), replace(meta, slug=new_slug, name=name).to_dict())
        return True

    def list_installed(self) -> list[str]:
        root = self.paths.install_dir()
        if not root.exists():
            return []
        return sorted(
            p.name
            for p in root.iterdir()
            if p.is_dir() and p.name != const.SYSTEM_DIR and (p / const.SKILL_FILE).exists()
        )

    def write_bootstrap(self) -> None:
        write_text_atomic(self.paths.system_dir() / const.SKILL_FILE, BOOTSTRAP_DOC)

    def ensure_install_dir(self) -> None:
        ensure_dir(self.paths.install_dir())

    def ensure_gitignore(self) -> bool:
        """Добавляет install_path в .gitignore проекта. True, если файл изменён."""
        path = self.paths.root / ".gitignore"
        entry = self.paths.install_path.rstrip("/") + "/"
        content = read_text(path) or ""
        lines = {line.strip() for line in content.splitlines()}
        if entry in lines or entry.rstrip("/") in lines:
            return False
        if content and not content.endswith("\n"):
            content += "\n"
        content += f"\n# Skills (synced files, not committed)\n{entry}\n"
        write_text_atomic(path, content)
        return True


_FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---(?:\r?\n|\Z)", re.S)


def read_frontmatter(content: Union[str, bytes]) -> dict:
    """YAML-шапка SKILL.md; пустой dict, если её нет или она не парсится."""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    match = _FRONTMATTER_RE.match(content or "")
    if not match:
        return {}
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        return {}
    if not isinstance(data, dict):
        return {}
    # ключи без учёта регистра: Description и description равнозначны
    return {str(k).lower(): v for k, v in data.items()}
