# tests/conftest.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

import pytest

from skillreg.adapters.fs.path_provider import ProjectPaths, RegistryPaths
from skillreg.apps.bootstrap import AppContext, clear_ctx, init_ctx
from skillreg.ports.remote import RemoteError, RemoteSkill
from skillreg.services.project.config import ProjectConfigStore
from skillreg.services.registry import semver
from skillreg.services.registry.objects import compute_hash
from skillreg.services.registry.service import LocalRegistry
from skillreg.services.settings import Settings
from skillreg.services.sync.engine import SyncEngine


def skill_doc(title: str, body: str = "Do the thing.", description: Optional[str] = None) -> str:
    desc = description or f"{title} skill"
    return f"---\nname: {title}\ndescription: {desc}\n---\n\n# {title}\n\n{body}\n"


# ---- удалённый реестр в памяти ----
class FakeRemote:
    def __init__(self, registry: str = "team"):
        self.registry = registry
        self.skills: dict[str, dict[str, bytes]] = {}
        self.published: list[tuple[str, str, bytes, Optional[str]]] = []
        self.fail_with: Optional[Exception] = None
        self.tamper = False

    def add(self, slug: str, version: str, content: str) -> None:
        self.skills.setdefault(slug, {})[version] = content.encode("utf-8")

    def fetch(self, slug: str, constraint: Optional[str] = None) -> RemoteSkill:
        if self.fail_with is not None:
            raise self.fail_with
        versions = self.skills.get(slug)
        if not versions:
            raise RemoteError(f"{slug} not found")
        version = semver.resolve_version(list(versions), constraint)
        if version is None:
            raise RemoteError(f"no version of {slug} satisfies {constraint}")
        content = versions[version]
        sha256 = compute_hash(content)
        if self.tamper:
            content = content + b"tampered"
        return RemoteSkill(slug=slug, version=version, content=content, sha256=sha256, name=slug.title(), tags=("remote",))

    def publish_version(self, slug: str, version: str, content: bytes, changelog: Optional[str] = None) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.published.append((slug, version, content, changelog))
        self.skills.setdefault(slug, {})[version] = content
        return version


# ---------- фикстура CLI-приложения ----------
@pytest.fixture
def cli_app():
    from skillreg.apps.cli.app import app

    return app


@pytest.fixture
def registry_root(tmp_path) -> Path:
    return tmp_path / "registry"


@pytest.fixture
def project_root(tmp_path) -> Path:
    root = tmp_path / "project"
    root.mkdir(parents=True, exist_ok=True)
    return root


# ---------- автофикстура: изолированный реестр и проект для каждого теста ----------
@pytest.fixture(autouse=True)
def _autocontext(registry_root, project_root, monkeypatch):
    monkeypatch.setenv("SKILLREG_HOME", str(registry_root))
    monkeypatch.setenv("SKILLREG_TESTING", "1")
    monkeypatch.delenv("SKILLREG_INSTALL_PATH", raising=False)
    monkeypatch.delenv("SKILLREG_CLI_DEBUG", raising=False)
    monkeypatch.chdir(project_root)

    ctx = init_ctx(Settings.from_sources(env_file=None), remotes={})
    # события должны доходить до caplog
    logging.getLogger("skillreg").propagate = True
    yield ctx

    clear_ctx()
    # setup_logging отключает propagate; возвращаем логгер в исходное состояние для caplog
    logger = logging.getLogger("skillreg")
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def ctx(_autocontext) -> AppContext:
    return _autocontext


@pytest.fixture
def paths(registry_root) -> RegistryPaths:
    return RegistryPaths.at(registry_root)


@pytest.fixture
def registry(paths) -> LocalRegistry:
    paths.ensure_tree()
    return LocalRegistry(paths)


@pytest.fixture
def project(project_root) -> ProjectPaths:
    p = ProjectPaths.at(project_root)
    ProjectConfigStore(p).init()
    return p


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def engine(registry, project) -> SyncEngine:
    return SyncEngine(registry, project)
