# src/skillreg/apps/cli/common.py
from __future__ import annotations

import functools
import os
import traceback
from typing import Optional

import typer
from rich import print
from rich.markup import escape

from skillreg.domain import SyncReport
from skillreg.errors import RegistryError
from skillreg.ports.remote import RemoteError


def run_safe(func):
    """Ошибки реестра -> одна строка и код выхода 1; трейсбек только при SKILLREG_CLI_DEBUG=1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (RegistryError, RemoteError) as e:
            if os.getenv("SKILLREG_CLI_DEBUG") == "1":
                traceback.print_exc()
            print(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(1)
        except Exception:
            if os.getenv("SKILLREG_CLI_DEBUG") == "1":
                traceback.print_exc()
            raise

    return wrapper


def split_csv(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def print_report(report: SyncReport, *, title: str = "Sync") -> None:
    print(
        f"[bold]{title}:[/bold] updated [cyan]{len(report.updated)}[/cyan], "
        f"unchanged [cyan]{len(report.unchanged)}[/cyan], errors [red]{len(report.errors)}[/red]"
    )
    for slug in report.updated:
        print(f"  [green]✓[/green] {slug}")
    for err in report.errors:
        print(f"  [red]✗[/red] {escape(err.slug)}: {escape(err.reason)} [dim]({err.kind})[/dim]")


def exit_on_errors(report: SyncReport) -> None:
    if not report.ok:
        raise typer.Exit(1)
