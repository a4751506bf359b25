"""
Shared pytest fixtures for rblint tests.

Logs go into a per-test temporary directory, and the logger / file cache
singletons are reset between tests.
"""
import textwrap

import pytest

from rblint.core.lint.file_cache import reset_file_cache
from rblint.lib.logger import reset_session


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path, monkeypatch):
    """Redirect log files into tmp_path and reset global singletons."""
    logs_dir = tmp_path / "logs"
    monkeypatch.setenv("RBLINT_LOG_DIR", str(logs_dir))
    monkeypatch.delenv("RBLINT_VERBOSE", raising=False)
    reset_session()
    reset_file_cache()

    yield logs_dir

    reset_session()
    reset_file_cache()


@pytest.fixture
def project(tmp_path):
    """
    A throwaway Ruby project root.

    Usage:
        path = project.write("app/models/user.rb", "def get_user(id)\\nend\\n")
    """
    root = tmp_path / "project"
    root.mkdir()

    class Project:
        path = root

        def write(self, rel_path: str, source: str):
            target = root / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(textwrap.dedent(source), encoding="utf-8")
            return target

        def read(self, rel_path: str) -> str:
            return (root / rel_path).read_text(encoding="utf-8")

    return Project()
