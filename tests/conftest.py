"""Shared fixtures for the sqlshim test suite."""

import pytest

from sqlshim.db import mysql_backend, postgres_backend
from sqlshim.db.connection import persistent_links

from .fakes import FakeMySQLLink, FakePostgresLink, link_factory


@pytest.fixture(autouse=True)
def _reset_persistent_links():
    yield
    persistent_links.close_all()


@pytest.fixture
def mysql_connect(monkeypatch):
    """Route pymysql.connect to an in-memory fake; returns the factory."""
    connect = link_factory(FakeMySQLLink)
    monkeypatch.setattr(mysql_backend.pymysql, "connect", connect)
    return connect


@pytest.fixture
def pgsql_connect(monkeypatch):
    """Route psycopg2.connect to an in-memory fake; returns the factory."""
    connect = link_factory(FakePostgresLink)
    monkeypatch.setattr(postgres_backend.psycopg2, "connect", connect)
    return connect


@pytest.fixture
def sqlite_path(tmp_path):
    """Path (without suffix) for a fresh SQLite database."""
    return str(tmp_path / "app")
