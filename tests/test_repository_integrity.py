"""Repository-level integrity checks."""

from __future__ import annotations

import importlib
import re
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
CONFLICT_PATTERN = re.compile(r"^(<<<<<<<|=======|>>>>>>>)( |$)", re.MULTILINE)
CHECKED_SUFFIXES = {".py", ".toml", ".cfg", ".txt"}
IGNORED_PARTS = {".git", "__pycache__", ".mypy_cache", ".pytest_cache", ".venv", "build"}


def _source_files() -> list[Path]:
    return sorted(
        path
        for path in REPO_ROOT.rglob("*")
        if path.is_file()
        and path.suffix in CHECKED_SUFFIXES
        and not any(part in IGNORED_PARTS for part in path.relative_to(REPO_ROOT).parts)
    )


def _service_modules() -> list[str]:
    services = REPO_ROOT / "app" / "services"
    return [f"app.services.{path.stem}" for path in sorted(services.glob("*.py"))]


def test_sources_have_no_merge_conflict_markers() -> None:
    offending = [
        path.relative_to(REPO_ROOT)
        for path in _source_files()
        if CONFLICT_PATTERN.search(path.read_text(encoding="utf-8", errors="ignore"))
    ]

    assert not offending, "Conflict markers left in: " + ", ".join(map(str, offending))


@pytest.mark.parametrize("module_name", _service_modules())
def test_service_modules_import_cleanly(module_name: str) -> None:
    module = importlib.import_module(module_name)

    assert hasattr(module, "logger")
