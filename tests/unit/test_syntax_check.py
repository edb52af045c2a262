"""
Syntax check: AST-parse every Python file and load every sample rubric.

Cheap, no imports and no network. Catches broken files (including test
modules that would otherwise only fail at collection) and sample rubrics in
tests/data that no longer parse.

Run:  python -m pytest tests/unit/test_syntax_check.py -v
"""

import ast
import json
from pathlib import Path

import pytest
import yaml

REPO_ROOT = Path(__file__).resolve().parents[2]

SCAN_DIRS = [
    REPO_ROOT / "gradedrop",
    REPO_ROOT / "tests",
]
DATA_DIR = REPO_ROOT / "tests" / "data"


def _py_files():
    for scan_dir in SCAN_DIRS:
        for py_file in sorted(scan_dir.rglob("*.py")):
            yield pytest.param(py_file, id=str(py_file.relative_to(REPO_ROOT)))


def _rubric_files():
    for path in sorted(DATA_DIR.iterdir()):
        if path.suffix in {".yml", ".yaml", ".json"}:
            yield pytest.param(path, id=path.name)


@pytest.mark.parametrize("py_file", list(_py_files()))
def test_syntax_valid(py_file: Path):
    try:
        ast.parse(py_file.read_text(encoding="utf-8"), filename=str(py_file))
    except SyntaxError as exc:
        pytest.fail(f"Syntax error in {py_file.relative_to(REPO_ROOT)}: {exc}")


@pytest.mark.parametrize("rubric_file", list(_rubric_files()))
def test_sample_rubric_parses(rubric_file: Path):
    text = rubric_file.read_text(encoding="utf-8")
    raw = json.loads(text) if rubric_file.suffix == ".json" else yaml.safe_load(text)
    assert isinstance(raw, dict)
    assert "criteria" in raw
