import numpy as np
import pandas as pd
import pytest
from sqlalchemy import text

from core import data_repository
from core.database_url import get_database_url, is_sqlite_memory
from core.repositories import PagedResult, SqlUnitOfWork, page_window


def test_records_turns_nan_into_none():
    df = pd.DataFrame([{"id": 1, "notes": np.nan}, {"id": 2, "notes": "ok"}])
    assert data_repository.records(df) == [{"id": 1, "notes": None}, {"id": 2, "notes": "ok"}]


def test_query_df_keeps_nullable_integers_as_is():
    data_repository.exec_sql(
        text("INSERT INTO organizations (name, slug, status, default_split_percentage, tax_rate, currency) "
             "VALUES ('A', 'a-shop', 'active', 60, 0, 'USD')")
    )
    row = data_repository.first_record(
        data_repository.query_df(text("SELECT id, store_code FROM organizations WHERE slug = :slug"), {"slug": "a-shop"})
    )
    assert isinstance(row["id"], int)
    assert row["store_code"] is None


def test_query_df_rejects_positional_params():
    with pytest.raises(TypeError):
        data_repository.query_df("SELECT 1", params=[1])


def test_unit_of_work_rolls_back_without_commit():
    with SqlUnitOfWork(data_repository.get_engine()) as uow:
        uow.connection.execute(
            text("INSERT INTO organizations (name, slug, status, default_split_percentage, tax_rate, currency) "
                 "VALUES ('B', 'b-shop', 'active', 60, 0, 'USD')")
        )
    df = data_repository.query_df(text("SELECT id FROM organizations WHERE slug = 'b-shop'"))
    assert df.empty


def test_paging_helpers():
    assert page_window(3, 20) == (20, 40)
    with pytest.raises(ValueError):
        page_window(0, 20)
    with pytest.raises(ValueError):
        page_window(1, 500)
    assert PagedResult(items=[1, 2], total=41, page=1, per_page=20).to_dict()["total_pages"] == 3


def test_database_url_defaults_to_local_postgres(monkeypatch):
    for name in ("DATABASE_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB", "DB_NAME", "DB_HOST",
                 "POSTGRES_HOST", "DB_PORT", "POSTGRES_PORT"):
        monkeypatch.delenv(name, raising=False)
    assert get_database_url() == "postgresql+psycopg2://postgres@localhost:5432/consignment"
    assert is_sqlite_memory("sqlite://")
    assert not is_sqlite_memory("sqlite:///shop.db")
