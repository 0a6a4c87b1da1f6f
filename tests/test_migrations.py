"""Tests for the Alembic migration history."""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from qa_tracker.db.base import Base

ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def alembic_config(tmp_path):
    database_url = f"sqlite:///{tmp_path / 'migrated.db'}"
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "migrations"))
    config.set_main_option("sqlalchemy.url", database_url)
    config.attributes["configure_logger"] = False
    return config, database_url


def test_upgrade_creates_model_tables(alembic_config):
    config, database_url = alembic_config
    command.upgrade(config, "head")

    engine = create_engine(database_url)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names()) - {"alembic_version"}
        assert tables == set(Base.metadata.tables)

        for table_name, table in Base.metadata.tables.items():
            columns = {column["name"] for column in inspector.get_columns(table_name)}
            assert columns == set(table.columns.keys()), table_name

        foreign_keys = {
            fk["referred_table"]: fk["options"].get("ondelete")
            for fk in inspector.get_foreign_keys("bug_reports")
        }
        assert foreign_keys == {"applications": "SET NULL", "users": "SET NULL"}
    finally:
        engine.dispose()


def test_downgrade_removes_tables(alembic_config):
    config, database_url = alembic_config
    command.upgrade(config, "head")
    command.downgrade(config, "base")

    engine = create_engine(database_url)
    try:
        assert set(inspect(engine).get_table_names()) <= {"alembic_version"}
    finally:
        engine.dispose()
