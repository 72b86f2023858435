# src/skillreg/services/sync/engine.py
from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from skillreg.adapters.fs.path_provider import ProjectPaths
from skillreg.config import const
from skillreg.domain import (
    InstalledSkillMeta,
    LockDocument,
    LockedEntry,
    ProjectConfig,
    ProjectEntry,
    Provenance,
    PushResult,
    ResolvedSkill,
    SaveResult,
    SkillMetadata,
    SkillSource,
    SyncReport,
    validate_slug,
)
from skillreg.errors import ConstraintUnsatisfiable, Corrupted, InvalidInput, NotFound, RegistryError
from skillreg.ports.remote import RemoteRegistry
from skillreg.services.project.config import ProjectConfigStore
from skillreg.services.project.index import DiscoveryIndex
from skillreg.services.project.installer import Materializer, read_frontmatter
from skillreg.services.project.lockfile import Lockfile
from skillreg.services.project.validation import SkillValidationService, ValidationReport
from skillreg.services.registry import semver
from skillreg.services.registry.objects import compute_hash
from skillreg.services.registry.service import LocalRegistry

_log = logging.getLogger("skillreg.sync")


def registry_name(source: Optional[SkillSource]) -> str:
    if source is None:
        return const.DEFAULT_SOURCE_NAME
    if source.is_cloud:
        return source.registry or source.name
    return source.name


class SkillReconciler:
    """
    Приводит один навык к желаемому состоянию.

    Побочные эффекты ограничены файлами этого навыка: <install>/<slug>/ и
    (при загрузке с удалённого реестра) записями кэша этого slug.
    """

    def __init__(self, registry: LocalRegistry, materializer: Materializer, remotes: Mapping[str, RemoteRegistry] | None = None):
        self.registry = registry
        self.materializer = materializer
        self.remotes = dict(remotes or {})

    def remote_for(self, source: Optional[SkillSource]) -> Optional[RemoteRegistry]:
        if source is None or not source.is_cloud:
            return None
        return self.remotes.get(source.name)

    def fetch_remote(self, slug: str, constraint: Optional[str], source: Optional[SkillSource]) -> bool:
        """Пробует скачать навык и положить его в кэш. False, если удалённого реестра нет."""
        remote = self.remote_for(source)
        if remote is None:
            return False
        name = registry_name(source)
        try:
            fetched = remote.fetch(slug, constraint)
        except Exception as exc:  # любой сбой удалённого реестра считается промахом
            _log.warning("sync.remote.failed", extra={"extra": {"slug": slug, "registry": name, "error": str(exc)}})
            raise NotFound(f"'{slug}' not available from remote '{name}': {exc}") from exc
        actual = compute_hash(fetched.content)
        if actual != fetched.sha256:
            raise Corrupted(f"remote '{name}' sent content for '{slug}' that does not match its hash", sha256=fetched.sha256)
        meta = None
        if fetched.name:
            meta = SkillMetadata(
                slug=slug,
                name=fetched.name,
                description=fetched.description,
                tags=tuple(fetched.tags),
                compat=tuple(fetched.compat),
            )
        self.registry.cache_remote(slug, fetched.version, fetched.content, source=name, meta=meta)
        _log.info("sync.remote.fetched", extra={"extra": {"slug": slug, "registry": name, "version": fetched.version}})
        return True

    def _pick_version(self, entry: ProjectEntry, source: Optional[SkillSource], locked: Optional[LockedEntry], force: bool) -> str:
        slug, constraint = entry.slug, entry.version
        if locked is not None and locked.version and not force and self.registry.ledger.version_exists(slug, locked.version):
            if not constraint or semver.resolve_version([locked.version], constraint) == locked.version:
                return locked.version
        version = self.registry.resolve(slug, constraint)
        if version is None and self.remote_for(source) is not None:
            try:
                self.fetch_remote(slug, constraint, source)
            except NotFound:
                pass
            else:
                version = self.registry.resolve(slug, constraint)
        if version is None:
            raise ConstraintUnsatisfiable(slug, constraint, self.registry.versions(slug))
        return version

    def resolve(self, entry: ProjectEntry, source: Optional[SkillSource], locked: Optional[LockedEntry], force: bool = False) -> ResolvedSkill:
        slug = entry.slug
        if not self.registry.exists(slug):
            if not self.fetch_remote(slug, entry.version, source):
                raise NotFound(f"'{slug}' not found in local cache; publish it first")

        if self.registry.has_ledger(slug):
            version = self._pick_version(entry, source, locked, force)
            resolved = self.registry.get_version(slug, version)
        else:
            if entry.version:
                _log.info("sync.constraint.ignored", extra={"extra": {"slug": slug, "constraint": entry.version}})
            resolved = self.registry.get_current(slug)
        if resolved is None:
            raise Corrupted(f"'{slug}' has no readable content in local cache")
        return resolved

    def reconcile(
        self,
        entry: ProjectEntry,
        source: Optional[SkillSource],
        locked: Optional[LockedEntry],
        *,
        force: bool = False,
    ) -> tuple[LockedEntry, InstalledSkillMeta, bool]:
        """Возвращает (новая запись lockfile, meta установленного навыка, изменился ли он)."""
        resolved = self.resolve(entry, source, locked, force)
        name = registry_name(source)
        changed = (
            force
            or locked is None
            or locked.sha256 != resolved.sha256
            or locked.version != resolved.version
            or not self.materializer.is_materialized(entry.slug)
        )
        installed = None
        if not changed:
            try:
                installed = self.materializer.read_installed_meta(entry.slug)
            except InvalidInput:
                installed = None
        if installed is None or installed.sha256 != resolved.sha256:
            changed = True
            installed = InstalledSkillMeta.from_resolved(resolved, registry=name)
            self.materializer.materialize(resolved.content, installed)
        new_lock = LockedEntry(slug=entry.slug, sha256=resolved.sha256, registry=name, version=resolved.version)
        return new_lock, installed, changed


class SyncEngine:
    """Синхронизация проекта с локальным реестром и операции над набором навыков проекта."""

    def __init__(self, registry: LocalRegistry, project: ProjectPaths, remotes: Mapping[str, RemoteRegistry] | None = None):
        self.registry = registry
        self.project = project
        self.remotes = dict(remotes or {})
        self.config = ProjectConfigStore(project)
        self.lockfile = Lockfile(project)

    def _bind(self) -> tuple[ProjectConfig, Materializer, DiscoveryIndex]:
        # install_path задаётся в .skills.yaml, поэтому пути установки вычисляются на каждую операцию
        config = self.config.read()
        paths = self.project.with_install_path(config.install_path)
        materializer = Materializer(paths)
        return config, materializer, DiscoveryIndex(paths, materializer)

    def reconciler(self, materializer: Materializer) -> SkillReconciler:
        return SkillReconciler(self.registry, materializer, self.remotes)

    # --- sync ---

    def sync(self, *, force: bool = False) -> SyncReport:
        config, materializer, index = self._bind()
        materializer.ensure_install_dir()
        previous = self.lockfile.read()
        reconciler = self.reconciler(materializer)

        report = SyncReport()
        locked_entries: list[LockedEntry] = []
        installed: list[InstalledSkillMeta] = []

        for entry in config.skills:
            prev = previous.get(entry.slug) if previous else None
            try:
                source = self._source(config, entry)
                lock_entry, meta, changed = reconciler.reconcile(entry, source, prev, force=force)
            except RegistryError as exc:
                report.fail(entry.slug, exc.kind, str(exc))
                _log.warning("sync.skill.failed", extra={"extra": {"slug": entry.slug, "kind": exc.kind, "reason": str(exc)}})
                # при сбое остаётся то, что уже установлено
                kept = self._keep_previous(materializer, prev)
                if kept is not None:
                    locked_entries.append(prev)
                    installed.append(kept)
                continue
            locked_entries.append(lock_entry)
            installed.append(meta)
            if changed:
                report.updated.append(entry.slug)
                _log.info("sync.skill.updated", extra={"extra": {"slug": entry.slug, "hash": lock_entry.sha256, "version": lock_entry.version}})
            else:
                report.unchanged.append(entry.slug)
                _log.debug("sync.skill.unchanged", extra={"extra": {"slug": entry.slug}})

        materializer.write_bootstrap()
        index.write(installed)
        self.lockfile.write(LockDocument(locked_at="", skills=locked_entries))
        _log.info(
            "sync.done",
            extra={"extra": {"updated": len(report.updated), "unchanged": len(report.unchanged), "errors": len(report.errors)}},
        )
        return report

    @staticmethod
    def _source(config: ProjectConfig, entry: ProjectEntry) -> Optional[SkillSource]:
        source = config.source_for(entry)
        if source is None and entry.source:
            raise InvalidInput(f"unknown source '{entry.source}' for '{entry.slug}'")
        return source

    @staticmethod
    def _keep_previous(materializer: Materializer, prev: Optional[LockedEntry]) -> Optional[InstalledSkillMeta]:
        if prev is None or not materializer.is_materialized(prev.slug):
            return None
        try:
            meta = materializer.read_installed_meta(prev.slug)
        except RegistryError:
            return None
        if meta is None or meta.sha256 != prev.sha256:
            return None
        return meta

    # --- add / remove ---

    def add(self, slugs: Iterable[str], *, constraint: Optional[str] = None, sync: bool = True) -> SyncReport:
        config, materializer, _ = self._bind()
        report = SyncReport()
        needs_sync = False
        if constraint:
            constraint = semver.validate_constraint(constraint)

        for raw in slugs:
            try:
                slug = validate_slug(raw)
            except InvalidInput as exc:
                report.fail(str(raw), exc.kind, str(exc))
                continue

            existing = config.find(slug)
            if existing is not None:
                if constraint and existing.version != constraint:
                    self.config.add_entry(ProjectEntry(slug=slug, source=existing.source, version=constraint))
                    needs_sync = True
                elif not materializer.is_materialized(slug):
                    _log.info("add.reinstall", extra={"extra": {"slug": slug}})
                    needs_sync = True
                else:
                    report.unchanged.append(slug)
                continue

            source = config.default_source()
            if not self.registry.exists(slug) and self.remotes.get(source.name if source else "") is None:
                report.fail(slug, NotFound.kind, f"'{slug}' not found in local cache; publish it first")
                continue

            self.config.add_entry(ProjectEntry(slug=slug, version=constraint))
            _log.info("add.entry", extra={"extra": {"slug": slug, "constraint": constraint}})
            needs_sync = True

        if needs_sync and sync:
            synced = self.sync()
            # unchanged из add дублировал бы записи sync
            report.unchanged = [s for s in report.unchanged if s not in synced.unchanged]
            report.merge(synced)
        return report

    def remove(self, slugs: Iterable[str]) -> SyncReport:
        """Удаляет навыки сразу: запись в .skills.yaml, каталог, lockfile, индекс."""
        config, materializer, index = self._bind()
        report = SyncReport()
        for raw in slugs:
            try:
                slug = validate_slug(raw)
            except InvalidInput as exc:
                report.fail(str(raw), exc.kind, str(exc))
                continue
            declared = config.find(slug) is not None
            locked = self.lockfile.get(slug) is not None
            present = materializer.is_materialized(slug) or materializer.paths.skill_dir(slug).exists()
            if not (declared or locked or present):
                report.fail(slug, NotFound.kind, f"'{slug}' is not part of this project")
                continue
            self.config.remove_entry(slug)
            materializer.delete(slug)
            self.lockfile.remove(slug)
            report.updated.append(slug)
            _log.info("remove.done", extra={"extra": {"slug": slug}})
        if report.updated:
            index.regenerate()
        return report

    def rename(self, slug: str, new_name: str) -> SkillMetadata:
        """Переименовывает навык в реестре и, если он объявлен или установлен, в проекте."""
        renamed = self.registry.rename(slug, new_name)
        old, new = validate_slug(slug), renamed.slug
        if not self.config.exists():
            return renamed
        _, materializer, index = self._bind()
        touched = self.config.rename_entry(old, new)
        touched = materializer.rename(old, new, renamed.name) or touched
        touched = self.lockfile.rename(old, new) or touched
        if touched:
            index.regenerate()
            _log.info("rename.project", extra={"extra": {"from": old, "to": new}})
        return renamed

    def validate(self, slugs: Optional[Iterable[str]] = None) -> list[ValidationReport]:
        _, materializer, _ = self._bind()
        return SkillValidationService(materializer).validate_all(slugs)

    # --- push / save ---

    def push(self, slug: str, *, version: Optional[str] = None, changelog: Optional[str] = None) -> PushResult:
        """Публикует материализованный SKILL.md в первый облачный источник проекта."""
        slug = validate_slug(slug)
        config, materializer, index = self._bind()
        clouds = config.cloud_sources()
        if not clouds:
            raise InvalidInput("push requires a cloud source in .skills.yaml")
        source = clouds[0]
        remote = self.remotes.get(source.name)
        if remote is None:
            raise NotFound(f"no remote registry configured for source '{source.name}'")

        data = materializer.read_content(slug)
        if data is None:
            raise NotFound(f"'{slug}' is not installed in this project; run sync first")

        locked = self.lockfile.get(slug)
        current = locked.version if locked is not None else None
        if not current or not semver.is_valid_version(current):
            # в ledger допустимы невалидные строки версий; отсчёт ведётся от базовой
            current = const.DEFAULT_BASELINE_VERSION
        new_version = str(version).strip() if version else semver.bump_version(current)
        if not semver.is_valid_version(new_version):
            raise InvalidInput(f"invalid version '{new_version}'")
        if not semver.is_greater(new_version, current):
            raise InvalidInput(f"new version ({new_version}) must be greater than current ({current})")

        name = registry_name(source)
        remote.publish_version(slug, new_version, data, changelog)

        # кэшируем опубликованную версию локально, чтобы следующий sync не откатил её
        self.registry.cache_remote(slug, new_version, data, source=name)
        resolved = self.registry.get_version(slug, new_version)
        sha256 = compute_hash(data)
        if resolved is not None:
            materializer.materialize(resolved.content, InstalledSkillMeta.from_resolved(resolved, registry=name))
        self.lockfile.update(LockedEntry(slug=slug, sha256=sha256, registry=name, version=new_version))
        index.regenerate()
        _log.info("push.done", extra={"extra": {"slug": slug, "registry": name, "version": new_version}})
        return PushResult(slug=slug, registry=name, version=new_version, sha256=sha256)

    def save(self, slug: str) -> SaveResult:
        """Возвращает правки SKILL.md из проекта в локальный реестр."""
        slug = validate_slug(slug)
        config, materializer, index = self._bind()
        content = materializer.read_content(slug)
        if content is None:
            raise NotFound(f"'{slug}' is not installed in this project; run sync first")

        existing = self.registry.meta.read_meta(slug)
        installed = materializer.read_installed_meta(slug)
        base = existing or installed
        sha256 = compute_hash(content)
        locked = self.lockfile.get(slug)

        if existing is not None and existing.sha256 == sha256:
            return SaveResult(slug=slug, sha256=sha256, version=locked.version if locked else None, changed=False)

        description = read_frontmatter(content).get("description")
        if not isinstance(description, str):
            description = base.description if base else None

        version = None
        if self.registry.has_ledger(slug):
            latest = self.registry.ledger.latest_version(slug) or const.DEFAULT_BASELINE_VERSION
            version = semver.bump_version(latest)

        self.registry.publish(
            slug,
            content,
            name=base.name if base else slug,
            description=description,
            tags=base.tags if base else (),
            compat=base.compat if base else (),
            version=version,
            provenance=Provenance(kind="local", source="save"),
        )
        entry = config.find(slug)
        source = config.source_for(entry) if entry is not None else config.default_source()
        name = registry_name(source)
        resolved = self.registry.get_version(slug, version) if version else self.registry.get_current(slug)
        if resolved is not None:
            materializer.materialize(resolved.content, InstalledSkillMeta.from_resolved(resolved, registry=name))
        self.lockfile.update(LockedEntry(slug=slug, sha256=sha256, registry=name, version=version))
        index.regenerate()
        _log.info("save.done", extra={"extra": {"slug": slug, "hash": sha256, "version": version}})
        return SaveResult(slug=slug, sha256=sha256, version=version, changed=True)
