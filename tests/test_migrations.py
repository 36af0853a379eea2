# mypy: ignore-errors
# tests/test_migrations.py
"""Tests for the Alembic environment and revisions."""

import io
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from zeelink.db.session import Base

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


def _config(output_buffer=None) -> Config:
    config = Config(output_buffer=output_buffer)
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    return config


def test_offline_upgrade_renders_schema(monkeypatch) -> None:
    monkeypatch.setenv("ALEMBIC_URL", "sqlite://")
    buffer = io.StringIO()

    command.upgrade(_config(buffer), "head", sql=True)

    sql = buffer.getvalue()
    for table in Base.metadata.tables:
        assert f"CREATE TABLE {table}" in sql


def test_online_upgrade_matches_models(monkeypatch, tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'zeelink.db'}"
    monkeypatch.setenv("ALEMBIC_URL", url)

    command.upgrade(_config(), "head")

    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert tables - {"alembic_version"} == set(Base.metadata.tables)
