# src/skillreg/adapters/fs/path_provider.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from skillreg.config import const


@dataclass(frozen=True, slots=True)
class RegistryPaths:
    """Единая точка истины для путей локального реестра (RegistryRoot)."""

    root: Path

    @classmethod
    def at(cls, root: str | Path) -> "RegistryPaths":
        return cls(root=Path(root).expanduser().resolve())

    def objects_dir(self) -> Path:
        return self.root / const.OBJECTS_DIR

    def object_path(self, sha256: str) -> Path:
        return self.objects_dir() / sha256

    def skills_dir(self) -> Path:
        return self.root / const.SKILLS_DIR

    def skill_dir(self, slug: str) -> Path:
        return self.skills_dir() / slug

    def meta_path(self, slug: str) -> Path:
        return self.skill_dir(slug) / const.META_FILE

    def versions_path(self, slug: str) -> Path:
        return self.skill_dir(slug) / const.VERSIONS_FILE

    def skill_file_path(self, slug: str) -> Path:
        return self.skill_dir(slug) / const.SKILL_FILE

    def logs_dir(self) -> Path:
        return self.root / const.LOGS_DIR

    def exists(self) -> bool:
        return self.root.exists()

    def ensure_tree(self) -> None:
        for p in (self.root, self.objects_dir(), self.skills_dir()):
            p.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True, slots=True)
class ProjectPaths:
    """Пути проекта (ProjectRoot); install_path берётся из .skills.yaml."""

    root: Path
    install_path: str = const.DEFAULT_INSTALL_PATH

    @classmethod
    def at(cls, root: str | Path, install_path: Optional[str] = None) -> "ProjectPaths":
        return cls(root=Path(root).expanduser().resolve(), install_path=install_path or const.DEFAULT_INSTALL_PATH)

    @classmethod
    def discover(cls, start: str | Path | None = None) -> "ProjectPaths":
        """Поднимается вверх до каталога с .skills.yaml, иначе start/cwd."""
        here = Path(start or Path.cwd()).expanduser().resolve()
        for candidate in (here, *here.parents):
            if (candidate / const.PROJECT_CONFIG_FILE).exists():
                return cls.at(candidate)
        return cls.at(here)

    def with_install_path(self, install_path: str) -> "ProjectPaths":
        return ProjectPaths(root=self.root, install_path=install_path or const.DEFAULT_INSTALL_PATH)

    def config_path(self) -> Path:
        return self.root / const.PROJECT_CONFIG_FILE

    def lockfile_path(self) -> Path:
        return self.root / const.LOCKFILE

    def install_dir(self) -> Path:
        return self.root / self.install_path

    def skill_dir(self, slug: str) -> Path:
        return self.install_dir() / slug

    def skill_file_path(self, slug: str) -> Path:
        return self.skill_dir(slug) / const.SKILL_FILE

    def installed_meta_path(self, slug: str) -> Path:
        return self.skill_dir(slug) / const.META_FILE

    def system_dir(self) -> Path:
        return self.install_dir() / const.SYSTEM_DIR

    def index_path(self) -> Path:
        return self.install_dir() / const.INDEX_FILE
