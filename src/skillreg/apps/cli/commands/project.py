# src/skillreg/apps/cli/commands/project.py
"""Команды проекта: .skills.yaml, синхронизация, возврат правок."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.markup import escape

from skillreg.adapters.fs.path_provider import ProjectPaths
from skillreg.apps.bootstrap import get_ctx
from skillreg.apps.cli.common import exit_on_errors, print_report, run_safe
from skillreg.domain import SkillSource
from skillreg.services.project.config import ProjectConfigStore
from skillreg.services.project.installer import Materializer


def _require_project() -> ProjectPaths:
    project = get_ctx().project()
    if not project.config_path().exists():
        print("[red]Error:[/red] not in a skills project.")
        print("Run [cyan]skillreg init[/cyan] first.")
        raise typer.Exit(1)
    return project


@run_safe
def init(
    install_path: Optional[str] = typer.Option(None, "--install-path", help="Каталог установки навыков (по умолчанию .claude/skills)"),
    cloud: bool = typer.Option(False, "--cloud", help="Добавить облачный источник"),
    name: str = typer.Option("cloud", "--name", help="Имя облачного источника"),
    registry: Optional[str] = typer.Option(None, "--registry", help="Slug облачного реестра"),
    url: Optional[str] = typer.Option(None, "--url", help="URL облачного реестра"),
):
    """Создать .skills.yaml в текущем проекте."""
    ctx = get_ctx()
    project = ProjectPaths.at(ctx.project_root or Path.cwd())
    source = None
    if cloud:
        if not registry or not url:
            raise typer.BadParameter("--cloud requires --registry and --url")
        source = SkillSource(name=name, kind="cloud", registry=registry, url=url)
    store = ProjectConfigStore(project)
    existed = store.exists()
    config = store.init(install_path=install_path or ctx.settings.install_path, cloud=source)
    materializer = Materializer(project.with_install_path(config.install_path))
    materializer.ensure_install_dir()
    materializer.ensure_gitignore()
    verb = "Updated" if existed else "Created"
    print(f"[green]{verb}[/green] {project.config_path()} (install path: [cyan]{config.install_path}[/cyan])")


@run_safe
def add(
    slugs: List[str] = typer.Argument(..., help="Slug-и навыков"),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Ограничение версии (^1.0.0, ~1.2, 2.1.0, ...)"),
    no_sync: bool = typer.Option(False, "--no-sync", help="Не запускать sync после добавления"),
):
    """Добавить навыки в проект и синхронизировать их."""
    project = _require_project()
    report = get_ctx().engine(project).add(slugs, constraint=version, sync=not no_sync)
    print_report(report, title="Add")
    exit_on_errors(report)


@run_safe
def remove(slugs: List[str] = typer.Argument(..., help="Slug-и навыков")):
    """Убрать навыки из проекта (конфиг, каталог, lockfile, индекс)."""
    project = _require_project()
    report = get_ctx().engine(project).remove(slugs)
    print_report(report, title="Remove")
    exit_on_errors(report)


@run_safe
def sync(force: bool = typer.Option(False, "--force", "-f", help="Переустановить всё, игнорируя lockfile")):
    """Привести установленные навыки к .skills.yaml."""
    project = _require_project()
    report = get_ctx().engine(project).sync(force=force)
    print_report(report)
    exit_on_errors(report)


@run_safe
def save(slug: str = typer.Argument(..., help="Slug навыка")):
    """Вернуть правки SKILL.md из проекта в локальный реестр."""
    project = _require_project()
    result = get_ctx().engine(project).save(slug)
    if not result.changed:
        print(f"[yellow]{slug}[/yellow] has no changes to save.")
        return
    suffix = f" v{result.version}" if result.version else ""
    print(f"[green]Saved[/green] {slug}{suffix} ({result.sha256[:12]})")


@run_safe
def push(
    slug: str = typer.Argument(..., help="Slug навыка"),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Новая версия (по умолчанию patch-bump)"),
    changelog: Optional[str] = typer.Option(None, "--changelog", "-c", help="Описание изменений"),
):
    """Опубликовать навык проекта в облачный реестр."""
    project = _require_project()
    result = get_ctx().engine(project).push(slug, version=version, changelog=changelog)
    print(f"[green]Pushed[/green] {slug} v{result.version} to {escape(result.registry)}")


def list_installed() -> None:
    project = _require_project()
    entries = get_ctx().engine(project).lockfile.entries()
    if not entries:
        print("[yellow]No skills installed.[/yellow] Run [cyan]skillreg sync[/cyan].")
        return
    for e in sorted(entries, key=lambda x: x.slug):
        version = f" v{e.version}" if e.version else ""
        print(f"- [green]{e.slug}[/green]{version} [dim]{e.registry} {e.sha256[:12]}[/dim]")


@run_safe
def validate(slug: Optional[str] = typer.Argument(None, help="Slug навыка (по умолчанию все установленные)")):
    """Проверить установленные навыки: SKILL.md и meta.yaml."""
    project = _require_project()
    reports = get_ctx().engine(project).validate([slug] if slug else None)
    if not reports:
        print("[yellow]No skills to validate.[/yellow]")
        return
    for report in reports:
        if not report.issues:
            print(f"[green]✓[/green] {report.slug}")
            continue
        mark = "[red]✗[/red]" if not report.ok else "[yellow]⚠[/yellow]"
        print(f"{mark} {escape(report.slug)}")
        for i in report.issues:
            lvl = "red" if i.level == "error" else "yellow"
            where = f" \\[{escape(i.where)}]" if i.where else ""
            print(f"    [{lvl}]{i.level}[/{lvl}] {i.code}{where}: {escape(i.message)}")
    if not all(r.ok for r in reports):
        raise typer.Exit(1)
