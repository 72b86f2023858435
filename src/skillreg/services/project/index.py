# src/skillreg/services/project/index.py
from __future__ import annotations

import logging
from typing import Iterable

from skillreg.adapters.fs.path_provider import ProjectPaths
from skillreg.config import const
from skillreg.domain import InstalledSkillMeta
from skillreg.services.fs.safe_io import write_text_atomic
from skillreg.services.project.installer import Materializer

_log = logging.getLogger("skillreg.project.index")

_HEADER = """# Skills Index

Skills installed in this project. Read a skill's `SKILL.md` when it is relevant
to the task at hand.
"""


def render_index(skills: Iterable[InstalledSkillMeta]) -> str:
    items = sorted(skills, key=lambda m: m.slug)
    parts = [_HEADER]
    if not items:
        parts.append("\n_No skills installed._\n")
        return "".join(parts)
    for meta in items:
        parts.append(f"\n## {meta.name}\n\n")
        if meta.description:
            parts.append(f"{meta.description}\n\n")
        parts.append(f"- slug: `{meta.slug}`\n")
        if meta.version:
            parts.append(f"- version: {meta.version}\n")
        if meta.tags:
            parts.append(f"- tags: {', '.join(meta.tags)}\n")
        if meta.compat:
            parts.append(f"- compat: {', '.join(meta.compat)}\n")
        parts.append(f"- path: `{meta.slug}/{const.SKILL_FILE}`\n")
    return "".join(parts)


class DiscoveryIndex:
    def __init__(self, paths: ProjectPaths, materializer: Materializer | None = None):
        self.paths = paths
        self.materializer = materializer or Materializer(paths)

    def write(self, skills: Iterable[InstalledSkillMeta]) -> None:
        skills = list(skills)
        write_text_atomic(self.paths.index_path(), render_index(skills))
        _log.debug("index.written", extra={"extra": {"skills": len(skills)}})

    def regenerate(self) -> list[InstalledSkillMeta]:
        """Пересобирает индекс по meta.yaml установленных навыков."""
        metas = []
        for slug in self.materializer.list_installed():
            meta = self.materializer.read_installed_meta(slug)
            if meta is not None:
                metas.append(meta)
        self.write(metas)
        return metas
