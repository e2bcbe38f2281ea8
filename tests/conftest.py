"""Pytest fixtures for edgedeck tests."""

import os
from pathlib import Path

import pytest

from edgedeck.settings import reset_settings

SAMPLE_TOML = """\
name = "shop"
main = "src/index.ts"
compatibility_date = "2024-09-01"

[vars]
GREETING = "hello"
DEBUG = true

[[d1_databases]]
binding = "DB"
database_name = "app_db"
database_id = "0000-1111"

[[kv_namespaces]]
binding = "CACHE"
id = "kv-cache-id"

[[r2_buckets]]
binding = "ASSETS"
bucket_name = "shop-assets"

[[durable_objects.bindings]]
name = "COUNTER"
class_name = "Counter"

[[queues.producers]]
binding = "JOBS"
queue = "jobs-queue"

[[queues.consumers]]
queue = "jobs-queue"
max_batch_size = 10
"""


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from EDGEDECK_* variables and cached settings."""
    for key in list(os.environ):
        if key.startswith("EDGEDECK_"):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a config file into tmp_path and return its path."""

    def _write(content: str, filename: str = "wrangler.toml", directory: Path | None = None) -> Path:
        target_dir = directory or tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / filename
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_project(tmp_path: Path, write_config) -> Path:
    """A project with one binding of every kind and an entry point."""
    write_config(SAMPLE_TOML)
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "index.ts").write_text("export default {}\n", encoding="utf-8")
    return tmp_path
