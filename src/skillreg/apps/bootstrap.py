# src/skillreg/apps/bootstrap.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import Mapping, Optional

from skillreg.adapters.fs.path_provider import ProjectPaths, RegistryPaths
from skillreg.ports.remote import RemoteRegistry
from skillreg.services.logging import setup_logging
from skillreg.services.registry.maintenance import CacheMaintenance
from skillreg.services.registry.service import LocalRegistry
from skillreg.services.settings import Settings
from skillreg.services.sync.engine import SyncEngine


@dataclass(slots=True)
class AppContext:
    settings: Settings
    paths: RegistryPaths
    registry: LocalRegistry
    maintenance: CacheMaintenance
    remotes: dict[str, RemoteRegistry] = field(default_factory=dict)
    project_root: Optional[Path] = None

    def project(self) -> ProjectPaths:
        """Корень проекта: ищется вверх до .skills.yaml от project_root или cwd."""
        return ProjectPaths.discover(self.project_root)

    def engine(self, project: Optional[ProjectPaths] = None) -> SyncEngine:
        return SyncEngine(self.registry, project or self.project(), self.remotes)


class _CtxHolder:
    _ctx: Optional[AppContext] = None
    _lock = RLock()

    @classmethod
    def get(cls) -> AppContext:
        with cls._lock:
            if cls._ctx is None:
                cls._ctx = cls._build(Settings.from_sources())
            return cls._ctx

    @classmethod
    def init(cls, settings: Optional[Settings] = None, remotes: Optional[Mapping[str, RemoteRegistry]] = None) -> AppContext:
        with cls._lock:
            # удалённые реестры переживают пересборку, если не переданы явно
            if remotes is None and cls._ctx is not None:
                remotes = cls._ctx.remotes
            cls._ctx = cls._build(settings or Settings.from_sources(), remotes)
            return cls._ctx

    @classmethod
    def clear(cls) -> None:
        with cls._lock:
            cls._ctx = None

    @staticmethod
    def _build(settings: Settings, remotes: Optional[Mapping[str, RemoteRegistry]] = None) -> AppContext:
        paths = RegistryPaths.at(settings.registry_root)
        paths.ensure_tree()
        setup_logging(paths, settings.log_level, to_file=not settings.testing)

        registry = LocalRegistry(paths)
        return AppContext(
            settings=settings,
            paths=paths,
            registry=registry,
            maintenance=CacheMaintenance(registry.objects),
            remotes=dict(remotes or {}),
        )


def get_ctx() -> AppContext:
    return _CtxHolder.get()


def init_ctx(settings: Optional[Settings] = None, remotes: Optional[Mapping[str, RemoteRegistry]] = None) -> AppContext:
    """Явная инициализация приложения."""
    return _CtxHolder.init(settings, remotes)


def clear_ctx() -> None:
    """Сбрасывает контекст (для тестов)."""
    _CtxHolder.clear()
