from __future__ import annotations
import os, shutil, tempfile
from pathlib import Path
from typing import Any, Optional

import yaml

from skillreg.config import const
from skillreg.errors import IOFailure, InvalidInput


def ensure_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IOFailure("cannot create directory", path=str(path)) from exc
    return path


def write_bytes_atomic(path: Path, data: bytes) -> None:
    """Пишет во временный файл рядом с целью и переименовывает его поверх.

    Читатель видит либо прежнюю, либо полностью записанную версию файла.
    """
    p = Path(path)
    ensure_dir(p.parent)
    try:
        fd, tmp = tempfile.mkstemp(prefix=f"{p.name}{const.TEMP_MARKER}{os.getpid()}.", dir=str(p.parent))
    except OSError as exc:
        raise IOFailure("cannot create temp file", path=str(p)) from exc
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, p)
    except OSError as exc:
        raise IOFailure("atomic write failed", path=str(p)) from exc
    finally:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass


def write_text_atomic(path: Path, data: str) -> None:
    write_bytes_atomic(path, data.encode("utf-8"))


def dump_yaml(obj: Any) -> str:
    return yaml.safe_dump(obj, sort_keys=False, allow_unicode=True, default_flow_style=False, width=4096)


def write_yaml_atomic(path: Path, obj: Any, *, header: str = "") -> None:
    write_text_atomic(path, header + dump_yaml(obj))


def read_text(path: Path) -> Optional[str]:
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise IOFailure("read failed", path=str(path)) from exc


def read_bytes(path: Path) -> Optional[bytes]:
    try:
        return Path(path).read_bytes()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise IOFailure("read failed", path=str(path)) from exc


def read_yaml(path: Path) -> Optional[Any]:
    text = read_text(path)
    if text is None:
        return None
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise InvalidInput(f"malformed yaml in {path}: {exc}") from exc


def remove_tree(path: Path) -> bool:
    p = Path(path)
    if not p.exists():
        return False
    try:
        shutil.rmtree(p)
    except OSError as exc:
        raise IOFailure("cannot remove directory", path=str(p)) from exc
    return True


def move_tree(src: Path, dst: Path) -> None:
    """Переименование каталога; цель не должна существовать."""
    if Path(dst).exists():
        raise InvalidInput(f"target already exists: {dst}")
    try:
        os.replace(src, dst)
    except OSError as exc:
        raise IOFailure("cannot move directory", path=str(src)) from exc


def is_temp_artifact(name: str) -> bool:
    return const.TEMP_MARKER in name
