from __future__ import annotations

import io
from pathlib import Path
import sys

import pytest
from openpyxl import Workbook, load_workbook

# Ensure project root is on sys.path for absolute imports
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from xlcompose.templates import TemplateStore


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "templates"
    directory.mkdir()
    return directory


@pytest.fixture
def store(template_dir: Path) -> TemplateStore:
    return TemplateStore(template_dir)


@pytest.fixture
def reload():
    def _reload(content: bytes):
        return load_workbook(io.BytesIO(content))

    return _reload


@pytest.fixture
def save_template(template_dir: Path):
    def _save(name: str, workbook: Workbook) -> Path:
        path = template_dir / name
        workbook.save(path)
        return path

    return _save
