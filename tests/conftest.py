"""Pytest configuration and fixtures for Cartograph tests."""

import re
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

A_JS = """// math helpers
function add(a, b) {
  return a + b;
}

module.exports = { add };
"""

B_JS = """import { add } from './a.js';

// entry point
function main() {
  return add(1, 2);
}

main();
"""

HELPERS_PY = """import os


def slugify(value):
    return value.lower().replace(" ", "-")


def join_all(parts):
    return os.sep.join(parts)
"""

APP_PY = """from .helpers import slugify


class App:
    def title(self, name):
        return slugify(name)
"""


def _write(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def hash_embed(text: str, dim: int = 64) -> list[float]:
    """Deterministic bag-of-words embedding used in place of a real model."""
    vec = [0.0] * dim
    for token in re.findall(r"[a-z_]+", text.lower()):
        vec[sum(map(ord, token)) % dim] += 1.0
    return vec


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def write_file(temp_dir: Path) -> Callable[[str, str], Path]:
    """Write a file below ``temp_dir`` and return its path."""

    def _writer(relative: str, content: str) -> Path:
        return _write(temp_dir, relative, content)

    return _writer


@pytest.fixture
def two_file_repo(temp_dir: Path) -> Path:
    """``a.js`` declares ``add`` on line 2; ``b.js`` imports it and calls it on line 5."""
    _write(temp_dir, "a.js", A_JS)
    _write(temp_dir, "b.js", B_JS)
    return temp_dir


@pytest.fixture
def sample_repo(temp_dir: Path) -> Path:
    """A small mixed-language project with an excluded dependency folder."""
    _write(temp_dir, "a.js", A_JS)
    _write(temp_dir, "b.js", B_JS)
    _write(temp_dir, "pkg/__init__.py", "")
    _write(temp_dir, "pkg/helpers.py", HELPERS_PY)
    _write(temp_dir, "pkg/app.py", APP_PY)
    _write(temp_dir, "docs/README.md", "# Sample\n\nNothing to see here.\n")
    _write(temp_dir, "node_modules/left-pad/index.js", "module.exports = function () {};\n")
    return temp_dir


@pytest.fixture
def fake_embed() -> Callable[[str], list[float]]:
    return hash_embed


class FakeLLM:
    """Records prompts instead of calling a chat model."""

    model = "fake-model"

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def synthesize(self, question: str, context: str) -> str:
        self.calls.append((question, context))
        return "## Answer\n\n`add` lives in `a.js`."

    def stream(self, question: str, context: str):
        self.calls.append((question, context))
        yield "## Answer"
        yield "\n\ndone"
