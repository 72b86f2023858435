# src/skillreg/apps/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv, find_dotenv
import typer
from rich import print

# загружаем .env один раз (SKILLREG_HOME, SKILLREG_LOG_LEVEL, ...)
load_dotenv(find_dotenv(usecwd=True))

from skillreg.services.settings import Settings
from skillreg.apps.bootstrap import init_ctx, get_ctx
from skillreg.apps.cli.common import run_safe
from skillreg.apps.cli.commands import cache, project, registry

app = typer.Typer(help="Локальный реестр навыков: публикация, версии, синхронизация в проекты.", no_args_is_help=True)


# -------- корневой callback (composition root) --------


@app.callback()
def main(
    registry_root: Optional[str] = typer.Option(None, "--registry-root", help="Каталог локального реестра (по умолчанию SKILLREG_HOME или ~/.config/skillreg/registry)"),
    project_root: Optional[str] = typer.Option(None, "--project-root", help="Каталог проекта (по умолчанию ищется вверх от cwd)"),
):
    """
    Вызывается перед любыми подкомандами: строит контекст процесса.
    """
    # 1) базовые настройки (.env/ENV), 2) CLI-переопределения только безопасных полей
    settings = Settings.from_sources().with_overrides(registry_root=registry_root)
    ctx = init_ctx(settings)
    if project_root:
        ctx.project_root = Path(project_root).expanduser().resolve()


@app.command("where")
@run_safe
def where():
    """Показать пути реестра и проекта."""
    ctx = get_ctx()
    project_paths = ctx.project()
    print(f"registry: {ctx.paths.root}")
    print(f"project:  {project_paths.root}")
    if project_paths.config_path().exists():
        config = ctx.engine(project_paths).config.read()
        print(f"install:  {project_paths.with_install_path(config.install_path).install_dir()}")


# -------- проект --------

app.command("init")(project.init)
app.command("add")(project.add)
app.command("remove")(project.remove)
app.command("sync")(project.sync)
app.command("save")(project.save)
app.command("push")(project.push)
app.command("validate")(project.validate)

# -------- реестр --------

app.command("publish")(registry.publish)
app.command("list")(registry.list_cmd)
app.command("info")(registry.info)
app.command("search")(registry.search)
app.command("delete")(registry.delete)
app.command("rename")(registry.rename)
app.command("import")(registry.import_cmd)

app.add_typer(cache.app, name="cache")

if __name__ == "__main__":
    app()
