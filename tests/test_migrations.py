# Alembic migrations: upgrading a fresh database creates the application schema; downgrade removes it.
from __future__ import annotations

import argparse
import os

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

SCRIPT_LOCATION = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "rentwise", "alembic"))


def alembic_config(url: str) -> Config:
    cfg = Config(cmd_opts=argparse.Namespace(x=[f"url={url}"]))
    cfg.set_main_option("script_location", SCRIPT_LOCATION)
    return cfg


def test_upgrade_and_downgrade(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    cfg = alembic_config(url)

    command.upgrade(cfg, "head")
    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        assert {"users", "profiles", "properties", "reviews"} <= set(inspector.get_table_names())
        columns = {c["name"] for c in inspector.get_columns("properties")}
        assert {"reviews_count", "landlord_name", "transportation", "status"} <= columns
        uniques = {u["name"] for u in inspector.get_unique_constraints("reviews")}
        assert "uq_reviews_property_user" in uniques
    finally:
        engine.dispose()

    command.downgrade(cfg, "base")
    engine = create_engine(url)
    try:
        assert "reviews" not in inspect(engine).get_table_names()
    finally:
        engine.dispose()
