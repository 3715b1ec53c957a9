"""
Runtime environment guards and dependency checks.
"""

import os
import shutil
from pathlib import Path
from typing import Dict, Iterable, List

from .exceptions import InfrastructureError


REQUIRED_MEDIA_TOOLS = ("ffmpeg",)


def parse_bool_env(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def missing_runtime_tools(tools: Iterable[str]) -> List[str]:
    return [tool for tool in tools if shutil.which(tool) is None]


def assert_directory_writable(path: Path, *, create: bool = True) -> None:
    if create:
        path.mkdir(parents=True, exist_ok=True)
    if not path.is_dir():
        raise InfrastructureError(f"Required directory is missing: {path}")

    probe = path / f".write_probe_{os.getpid()}.tmp"
    try:
        probe.write_text("ok", encoding="utf-8")
        probe.unlink(missing_ok=True)
    except OSError as exc:
        raise InfrastructureError(f"Directory is not writable: {path}") from exc


def run_startup_runtime_checks(
    *,
    work_dir: Path,
    data_dir: Path,
    strict_tools: bool,
) -> Dict[str, object]:
    """Verify scratch/data directories and media binaries before accepting work."""
    report: Dict[str, object] = {"directories": {}, "tools": {}, "ok": True}

    for dir_name, dir_path in (("work", work_dir), ("data", data_dir)):
        assert_directory_writable(dir_path)
        report["directories"][dir_name] = {"path": str(dir_path), "writable": True}

    missing = missing_runtime_tools(REQUIRED_MEDIA_TOOLS)
    report["tools"] = {"required": list(REQUIRED_MEDIA_TOOLS), "missing": missing}
    if missing:
        report["ok"] = False
        if strict_tools:
            raise InfrastructureError(f"Missing required media tools: {', '.join(missing)}")

    return report
