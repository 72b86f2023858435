# src/skillreg/apps/cli/commands/cache.py
from __future__ import annotations

from typing import Optional

import typer
from rich import print

from skillreg.apps.bootstrap import get_ctx
from skillreg.apps.cli.common import run_safe

app = typer.Typer(help="Обслуживание хранилища объектов")


@app.command("verify")
@run_safe
def verify():
    """Перехэшировать все объекты и сообщить о повреждённых. Ничего не чинит."""
    report = get_ctx().maintenance.verify()
    if report.ok:
        print(f"[green]OK[/green]: {report.checked} objects verified.")
        return
    print(f"[red]{len(report.corrupted)} corrupted[/red] of {report.checked} objects:")
    for sha256 in report.corrupted:
        print(f"  [red]✗[/red] {sha256}")
    print("Republish the affected skills to restore them.")
    raise typer.Exit(1)


@app.command("clean")
@run_safe
def clean(max_age: Optional[float] = typer.Option(None, "--max-age", help="Возраст temp-файлов в секундах (по умолчанию SKILLREG_TEMP_MAX_AGE)")):
    """Удалить осиротевшие temp-файлы старше max_age."""
    ctx = get_ctx()
    removed = ctx.maintenance.clean(ctx.settings.temp_max_age if max_age is None else max_age)
    print(f"Removed [cyan]{removed}[/cyan] stale temp files.")
