from __future__ import annotations

import logging
import shutil
from pathlib import Path

import pytest

from sma.metadata.registry import TypeRegistry, load_registry
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a git repository rooted at the pytest tmp_path."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    return RepoBuilder(tmp_path)


@pytest.fixture(scope="session")
def registry() -> TypeRegistry:
    """The bundled type registry, loaded once for the session."""
    return load_registry()


@pytest.fixture(autouse=True)
def _reset_sma_logger():
    """Undo configure_logging() so caplog keeps seeing sma records."""
    yield
    logger = logging.getLogger("sma")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
