# src/skillreg/apps/cli/commands/registry.py
"""Команды локального реестра: публикация, просмотр, поиск, удаление."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Union

import typer
from rich import print
from rich.markup import escape

from skillreg.apps.bootstrap import get_ctx
from skillreg.apps.cli.common import exit_on_errors, print_report, run_safe, split_csv
from skillreg.apps.cli.commands import project as project_cmd
from skillreg.domain import SkillMetadata
from skillreg.errors import NotFound
from skillreg.services.project.installer import read_frontmatter
from skillreg.services.registry import importer


def _read_content(content: str) -> Union[str, bytes]:
    if content == "-":
        return sys.stdin.read()
    path = Path(content)
    if not path.exists():
        raise typer.BadParameter(f"file not found: {content}")
    return path.read_bytes()


def _line(meta: SkillMetadata, version: Optional[str] = None) -> str:
    v = f" v{version}" if version else ""
    desc = f" - {escape(meta.description)}" if meta.description else ""
    tags = f" [dim]\\[{escape(', '.join(meta.tags))}][/dim]" if meta.tags else ""
    return f"[green]{meta.slug}[/green]{v}{desc}{tags}"


@run_safe
def publish(
    slug: str = typer.Argument(..., help="Slug навыка"),
    content: str = typer.Option(..., "--content", help="Путь к SKILL.md или '-' для stdin"),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Версия (semver); без неё навык хранится одной копией"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Название"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Описание"),
    tags: Optional[str] = typer.Option(None, "--tags", "-t", help="Теги через запятую"),
    compat: Optional[str] = typer.Option(None, "--compat", help="Совместимость через запятую"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Changelog для версии"),
):
    """Опубликовать навык в локальный реестр."""
    text = _read_content(content)
    front = read_frontmatter(text)
    if name is None and isinstance(front.get("name"), str):
        name = front["name"]
    if description is None and isinstance(front.get("description"), str):
        description = front["description"]
    result = get_ctx().registry.publish(
        slug,
        text,
        name=name,
        description=description,
        tags=split_csv(tags),
        compat=split_csv(compat),
        version=version,
        changelog=message,
    )
    suffix = f" v{result.version}" if result.version else ""
    note = " [dim](content unchanged, deduplicated)[/dim]" if result.deduplicated else ""
    print(f"[green]Published[/green] {result.slug}{suffix} ({result.sha256[:12]}){note}")


@run_safe
def list_cmd(
    installed: bool = typer.Option(False, "--installed", help="Навыки, установленные в проекте"),
    tags: Optional[str] = typer.Option(None, "--tags", help="Фильтр по тегам (через запятую)"),
    compat: Optional[str] = typer.Option(None, "--compat", help="Фильтр по совместимости (через запятую)"),
):
    """Список навыков локального реестра."""
    if installed:
        project_cmd.list_installed()
        return
    registry = get_ctx().registry
    metas = registry.filter_by_tags(split_csv(tags)) if tags else registry.list_skills()
    if compat:
        matching = {m.slug for m in registry.filter_by_compat(split_csv(compat))}
        metas = [m for m in metas if m.slug in matching]
    if not metas:
        print("[yellow]No skills in local registry.[/yellow]")
        return
    for meta in metas:
        versions = registry.versions(meta.slug)
        print(f"- {_line(meta, versions[0] if versions else None)}")


@run_safe
def info(slug: str = typer.Argument(..., help="Slug навыка")):
    """Подробности о навыке и его версиях."""
    data = get_ctx().registry.info(slug)
    meta = data.meta
    print(f"[bold]{escape(meta.name)}[/bold] ([green]{meta.slug}[/green])")
    if meta.description:
        print(f"  Description: {escape(meta.description)}")
    if meta.tags:
        print(f"  Tags:        {escape(', '.join(meta.tags))}")
    if meta.compat:
        print(f"  Compat:      {escape(', '.join(meta.compat))}")
    if meta.sha256:
        print(f"  SHA256:      {meta.sha256}")
    print(f"  Updated:     {meta.updated_at}")
    if not data.versions:
        print("  Versions:    [dim](single copy)[/dim]")
        return
    print("  Versions:")
    for entry in data.versions:
        current = " [cyan](current)[/cyan]" if entry.sha256 == meta.sha256 else ""
        log = f" - {escape(entry.changelog)}" if entry.changelog else ""
        print(f"    {entry.version}  {entry.sha256[:12]}  [dim]{entry.provenance.kind}[/dim]{current}{log}")


@run_safe
def search(query: str = typer.Argument(..., help="Строка поиска")):
    """Поиск по slug, названию, тегам и описанию."""
    hits = get_ctx().registry.search(query)
    if not hits:
        print(f"[yellow]No skills match[/yellow] '{escape(query)}'.")
        return
    for hit in hits:
        print(f"- {_line(hit.meta)} [dim]({hit.matched_on})[/dim]")


@run_safe
def delete(slug: str = typer.Argument(..., help="Slug навыка")):
    """Удалить навык из локального реестра (объекты остаются)."""
    if not get_ctx().registry.delete(slug):
        raise NotFound(f"skill '{slug}' not found in local registry")
    print(f"[green]Deleted[/green] {slug}")


@run_safe
def rename(
    slug: str = typer.Argument(..., help="Текущий slug навыка"),
    new_name: str = typer.Argument(..., help="Новое название; slug выводится из него"),
):
    """Переименовать навык (реестр и, если есть, текущий проект)."""
    renamed = get_ctx().engine().rename(slug, new_name)
    print(f"[green]Renamed[/green] {slug} -> [cyan]{renamed.slug}[/cyan] ({escape(renamed.name)})")


@run_safe
def import_cmd(
    path: Optional[str] = typer.Argument(None, help="Свой путь: файл, каталог с <slug>/SKILL.md или каталог с *.md"),
    force: bool = typer.Option(False, "--force", "-f", help="Импортировать поверх существующих навыков"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Только показать найденное"),
    include_home: bool = typer.Option(False, "--global", help="Искать также в домашнем каталоге (~/.claude/...)"),
):
    """Импортировать навыки из .claude/skills, .claude/commands, AGENTS.md, .cursorrules и т.п."""
    ctx = get_ctx()
    root = ctx.project().root
    locations = importer.default_locations(root, Path.home() if include_home else None)
    if path:
        target = Path(path).expanduser().resolve()
        if not target.exists():
            raise typer.BadParameter(f"path not found: {path}")
        locations.insert(0, importer.location_for(target))
    found = importer.discover(locations)
    if not found:
        print("[yellow]No skills found to import.[/yellow]")
        return
    if dry_run:
        for skill in found:
            exists = " [yellow](exists)[/yellow]" if ctx.registry.exists(skill.slug) else ""
            print(f"- [green]{skill.slug}[/green]{exists} [dim]{escape(str(skill.source_path))}[/dim]")
        return
    report = importer.SkillImporter(ctx.registry).import_skills(found, force=force)
    print_report(report, title="Import")
    for slug in report.unchanged:
        print(f"  [yellow]-[/yellow] {slug} [dim](exists, use --force)[/dim]")
    exit_on_errors(report)
