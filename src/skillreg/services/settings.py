# src/skillreg/services/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

from skillreg.config import const


def _env_file_values(path: Optional[str]) -> Mapping[str, Optional[str]]:
    if not path or not Path(path).is_file():
        return {}
    return dotenv_values(path)


def default_registry_root() -> Path:
    return Path.home() / ".config" / "skillreg" / "registry"


@dataclass(frozen=True, slots=True)
class Settings:
    registry_root: Path
    log_level: str = "INFO"
    temp_max_age: float = float(const.TEMP_MAX_AGE_SEC)
    install_path: str = const.DEFAULT_INSTALL_PATH
    testing: bool = False

    @staticmethod
    def from_sources(env_file: Optional[str] = ".env") -> "Settings":
        """Порядок: переменные окружения, затем .env, затем значения по умолчанию."""
        file_vars = _env_file_values(env_file)

        def pick_env(key: str, default: str = "") -> str:
            return os.environ.get(key) or file_vars.get(key) or default

        root = pick_env("SKILLREG_HOME")
        try:
            temp_max_age = float(pick_env("SKILLREG_TEMP_MAX_AGE", str(const.TEMP_MAX_AGE_SEC)))
        except ValueError:
            temp_max_age = float(const.TEMP_MAX_AGE_SEC)

        return Settings(
            registry_root=Path(root).expanduser().resolve() if root else default_registry_root(),
            log_level=pick_env("SKILLREG_LOG_LEVEL", "INFO").upper(),
            temp_max_age=temp_max_age,
            install_path=pick_env("SKILLREG_INSTALL_PATH", const.DEFAULT_INSTALL_PATH),
            testing=pick_env("SKILLREG_TESTING", "0") == "1",
        )

    def with_overrides(self, **kw) -> "Settings":
        # из CLI меняются только registry_root и log_level
        allowed = {k: v for k, v in kw.items() if k in ("registry_root", "log_level") and v is not None}
        if "registry_root" in allowed:
            allowed["registry_root"] = Path(allowed["registry_root"]).expanduser().resolve()
        return replace(self, **allowed)
