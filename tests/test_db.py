import os
from unittest.mock import MagicMock, patch

import pennywise.db as db_module


class TestGetEngine:
    def test_creates_engine(self, monkeypatch):
        monkeypatch.setattr(db_module, "_engine", None)
        with patch.object(db_module, "settings") as mock_settings:
            mock_settings.db_url = "sqlite:///:memory:"
            engine = db_module.get_engine()
            assert engine is not None
            assert db_module._engine is engine

    def test_sqlite_enforces_foreign_keys(self, monkeypatch):
        monkeypatch.setattr(db_module, "_engine", None)
        with patch.object(db_module, "settings") as mock_settings:
            mock_settings.db_url = "sqlite:///:memory:"
            engine = db_module.get_engine()

        with engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

    def test_returns_cached_engine(self, monkeypatch):
        sentinel = MagicMock()
        monkeypatch.setattr(db_module, "_engine", sentinel)
        assert db_module.get_engine() is sentinel


class TestGetConnection:
    def test_creates_connection(self, monkeypatch):
        monkeypatch.setattr(db_module, "_connection", None)
        mock_engine = MagicMock()
        mock_conn = MagicMock()
        mock_engine.connect.return_value = mock_conn
        with patch.object(db_module, "get_engine", return_value=mock_engine):
            assert db_module.get_connection() is mock_conn

    def test_returns_cached_connection(self, monkeypatch):
        sentinel = MagicMock()
        monkeypatch.setattr(db_module, "_connection", sentinel)
        assert db_module.get_connection() is sentinel


class TestCloseConnection:
    def test_closes_and_forgets_connection(self, monkeypatch):
        mock_conn = MagicMock()
        mock_conn.in_transaction.return_value = False
        monkeypatch.setattr(db_module, "_connection", mock_conn)

        db_module.close_connection()

        mock_conn.rollback.assert_not_called()
        mock_conn.close.assert_called_once()
        assert db_module._connection is None

    def test_rolls_back_open_transaction(self, monkeypatch):
        mock_conn = MagicMock()
        mock_conn.in_transaction.return_value = True
        monkeypatch.setattr(db_module, "_connection", mock_conn)

        db_module.close_connection()

        mock_conn.rollback.assert_called_once()
        mock_conn.close.assert_called_once()

    def test_noop_without_connection(self, monkeypatch):
        monkeypatch.setattr(db_module, "_connection", None)
        db_module.close_connection()
        assert db_module._connection is None


class TestAlembicConfig:
    def test_points_at_project_alembic_dir(self):
        cfg = db_module._get_alembic_config()
        location = cfg.get_main_option("script_location")
        assert location.endswith("alembic")
        assert os.path.isdir(os.path.join(location, "versions"))


class TestInitializeDb:
    @patch("pennywise.db.command")
    @patch("pennywise.db._get_alembic_config")
    def test_calls_alembic_upgrade(self, mock_config, mock_command):
        mock_cfg = MagicMock()
        mock_config.return_value = mock_cfg
        db_module.initialize_db()
        mock_command.upgrade.assert_called_once_with(mock_cfg, "head")
