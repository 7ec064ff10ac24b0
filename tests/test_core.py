"""Tests for the Database façade."""

import pytest

from sqlshim import ConnectionParams, Database, create_database
from sqlshim.db import DRIVERS, MySQLDriver, PostgresDriver, SQLiteDriver, ensure_driver, get_driver_class
from sqlshim.errors import ConfigurationError, ConnectError


class TestRegistry:

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("mysql", MySQLDriver),
            ("mysqli", MySQLDriver),
            ("MariaDB", MySQLDriver),
            ("pgsql", PostgresDriver),
            ("postgresql", PostgresDriver),
            ("sqlite", SQLiteDriver),
            ("SQLite3", SQLiteDriver),
        ],
    )
    def test_lookup(self, name, expected):
        assert get_driver_class(name) is expected

    def test_every_driver_satisfies_contract(self):
        for cls in set(DRIVERS.values()):
            missing = [op for op in ("query", "fetch_row", "close", "get_version") if not hasattr(cls, op)]
            assert missing == []

    def test_unknown_driver_rejected_before_io(self, tmp_path):
        with pytest.raises(ConfigurationError, match="'oracle' is not a valid database type"):
            Database("oracle", name=str(tmp_path / "never"))
        assert list(tmp_path.iterdir()) == []

    def test_ensure_driver_names_missing_operations(self):
        class Half:
            def query(self, sql, unbuffered=False):
                return None

        with pytest.raises(TypeError, match="missing operations"):
            ensure_driver(Half())


class TestLazyConnection:

    def test_not_connected_until_first_use(self, sqlite_path):
        db = Database("sqlite3", name=sqlite_path)
        assert not db.is_active()

        res = db.query("SELECT 1")
        assert db.is_active()
        assert db.fetch_row(res) == [1]
        db.close()

    def test_connects_only_once(self, mysql_connect):
        db = Database("mysql", "db.local", "u", "p", "forum")
        db.query("SELECT 1")
        db.escape("x")
        db.error()
        assert len(mysql_connect.created) == 1
        db.close()

    def test_credentials_dropped_after_connect(self, sqlite_path):
        db = Database("sqlite3", password="s3cret", name=sqlite_path)
        db.query("SELECT 1")
        assert db._params is None
        db.close()

    def test_charset_applied_on_connect(self, mysql_connect):
        db = Database("mysql", "db.local", "u", "p", "forum", charset="utf8mb4")
        db.query("SELECT 1")

        link = mysql_connect.created[-1]
        assert link.set_statements == ["SET NAMES 'utf8mb4'"]
        assert link.charset == "utf8mb4"
        db.close()

    def test_connect_failure_propagates(self, tmp_path):
        db = Database("sqlite3", name=str(tmp_path / "missing" / "db"))
        with pytest.raises(ConnectError):
            db.query("SELECT 1")
        assert not db.is_active()

    def test_forwards_debug_flag(self, sqlite_path):
        db = Database("sqlite3", name=sqlite_path, debug=True)
        db.query("SELECT 1")
        assert [sql for sql, _ in db.get_saved_queries()] == ["SELECT 1"]
        assert db.get_num_queries() == 1
        db.close()


class TestForwarding:

    @pytest.fixture
    def db(self, sqlite_path):
        db = Database("sqlite3", name=sqlite_path)
        yield db
        db.close()

    def test_round_trip(self, db):
        assert db.query("CREATE TABLE x (id INTEGER PRIMARY KEY, name TEXT)").is_valid()
        assert db.start_transaction()
        db.query(f"INSERT INTO x (name) VALUES ('{db.escape(chr(39))}')")
        assert db.end_transaction()

        assert db.insert_id() == 1
        assert db.affected_rows() == 1

        res = db.query("SELECT x.id, x.name FROM x")
        assert db.fetch_assoc(res) == {"id": 1, "name": "'"}
        assert db.num_rows(res) is False
        db.free_result(res)

        assert db.result(db.query("SELECT name FROM x")) == "'"

    def test_error(self, db):
        assert not db.query("SELECT * FROM nowhere").is_valid()
        assert db.error()["error_sql"] == "SELECT * FROM nowhere"

    def test_charset_calls(self, db):
        assert not db.set_names("utf8").is_valid()
        assert db.set_charset("utf8") is False

    def test_version(self, db):
        assert db.get_version()["name"] == "SQLite3"


class TestClose:

    def test_close_unused_facade_does_not_connect(self, sqlite_path):
        db = Database("sqlite3", name=sqlite_path)
        assert db.close() is False
        assert not db.is_active()

        # Still usable: close() before connecting is a no-op.
        assert db.query("SELECT 1").is_valid()
        db.close()

    def test_close_active(self, sqlite_path):
        db = Database("sqlite3", name=sqlite_path)
        db.query("SELECT 1")
        assert db.close() is True
        assert not db.is_active()
        assert db.close() is False

    def test_use_after_close_raises(self, sqlite_path):
        db = Database("sqlite3", name=sqlite_path)
        db.query("SELECT 1")
        db.close()
        with pytest.raises(ConnectError, match="has been closed"):
            db.query("SELECT 1")

    def test_context_manager(self, sqlite_path):
        with Database("sqlite3", name=sqlite_path) as db:
            db.query("SELECT 1")
            assert db.is_active()
        assert not db.is_active()


class TestConstructionHelpers:

    def test_from_config(self, sqlite_path):
        db = Database.from_config(ConnectionParams(driver="sqlite3", name=sqlite_path))
        assert db.query("SELECT 1").is_valid()
        db.close()

    def test_from_env(self, monkeypatch, sqlite_path):
        monkeypatch.setenv("SQLSHIM_DB_DRIVER", "sqlite")
        monkeypatch.setenv("SQLSHIM_DB_NAME", sqlite_path)
        db = Database.from_env()
        assert db.query("SELECT 1").is_valid()
        db.close()

    def test_create_database(self, pgsql_connect):
        db = create_database(ConnectionParams(driver="pgsql", host="db.local", name="forum"))
        assert db.get_version()["name"] == "PostgreSQL"
        db.close()
