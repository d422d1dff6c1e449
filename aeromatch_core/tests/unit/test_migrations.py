"""Checks that the initial Alembic revision covers every ORM table and column."""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType
from unittest.mock import MagicMock

import aeromatch_core.state as state_pkg
import pytest
import sqlalchemy as sa
from aeromatch_core.state.tables import Base

_VERSIONS = Path(state_pkg.__file__).parent / "migrations" / "versions"


def _load_revision(filename: str) -> ModuleType:
    spec = importlib.util.spec_from_file_location(filename.removesuffix(".py"), _VERSIONS / filename)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def created_tables(monkeypatch: pytest.MonkeyPatch) -> dict[str, set[str]]:
    revision = _load_revision("001_initial.py")
    fake_op = MagicMock()
    monkeypatch.setattr(revision, "op", fake_op)

    revision.upgrade()

    tables: dict[str, set[str]] = {}
    for call in fake_op.create_table.call_args_list:
        name, *elements = call.args
        tables[name] = {el.name for el in elements if isinstance(el, sa.Column)}
    return tables


def test_revision_is_root() -> None:
    revision = _load_revision("001_initial.py")

    assert revision.revision == "001"
    assert revision.down_revision is None


def test_every_table_created(created_tables: dict[str, set[str]]) -> None:
    assert set(created_tables) == set(Base.metadata.tables)


def test_columns_match_models(created_tables: dict[str, set[str]]) -> None:
    for name, table in Base.metadata.tables.items():
        assert created_tables[name] == {column.name for column in table.columns}, name


def test_downgrade_drops_everything(monkeypatch: pytest.MonkeyPatch) -> None:
    revision = _load_revision("001_initial.py")
    fake_op = MagicMock()
    monkeypatch.setattr(revision, "op", fake_op)

    revision.downgrade()

    dropped = [call.args[0] for call in fake_op.drop_table.call_args_list]
    assert set(dropped) == set(Base.metadata.tables)
    assert dropped[-1] == "profiles"
