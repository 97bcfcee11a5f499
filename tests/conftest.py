"""Shared fixtures: every test gets private config and data directories."""

from __future__ import annotations

import pytest

from project_lint.cli import get_hook_logger


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    data_dir = tmp_path / "data"
    monkeypatch.setenv("PROJECT_LINT_HOME", str(config_dir))
    monkeypatch.setenv("XDG_DATA_HOME", str(data_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    get_hook_logger.cache_clear()
    yield config_dir
    get_hook_logger.cache_clear()


@pytest.fixture
def config_dir(isolated_dirs):
    return isolated_dirs


@pytest.fixture
def log_dir(tmp_path):
    return tmp_path / "data" / "project-lint" / "logs"


@pytest.fixture
def project(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path
