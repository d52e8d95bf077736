"""Integration test: the Alembic migration builds the same schema as the models."""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from backend.app.db.models import Base

ALEMBIC_DIR = Path(__file__).resolve().parents[2] / "backend" / "app" / "db" / "alembic"


def _config(database_path: Path) -> Config:
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{database_path}")
    return config


def test_upgrade_creates_all_tables(tmp_path: Path) -> None:
    database_path = tmp_path / "migrated.db"

    command.upgrade(_config(database_path), "head")

    engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert set(Base.metadata.tables) <= tables

        clause_columns = {c["name"] for c in inspector.get_columns("legal_clause")}
        assert {"clause_id", "document_id", "position", "clause_number", "embedding"} <= clause_columns

        answer_clause_pk = inspector.get_pk_constraint("answer_clause")["constrained_columns"]
        assert set(answer_clause_pk) == {"answer_id", "clause_id"}
    finally:
        engine.dispose()


def test_downgrade_drops_tables(tmp_path: Path) -> None:
    database_path = tmp_path / "migrated.db"
    config = _config(database_path)

    command.upgrade(config, "head")
    command.downgrade(config, "base")

    engine = create_engine(f"sqlite:///{database_path}")
    try:
        tables = set(inspect(engine).get_table_names())
        assert not tables & set(Base.metadata.tables)
    finally:
        engine.dispose()
