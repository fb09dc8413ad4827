"""DatabaseFactory and connected_adapter tests."""

from unittest.mock import MagicMock, patch

import pytest

from db_browser.database import (
    DatabaseConfig,
    DatabaseFactory,
    DatabaseType,
    QueryExecutionError,
    SQLServerAdapter,
    ValidationError,
    connected_adapter,
)

CONFIG = {"server": "db", "database": "shop", "username": "sa", "password": "pw"}


class TestDatabaseFactory:

    @pytest.mark.parametrize("name", ["sqlserver", "mssql", "SQLServer", DatabaseType.SQLSERVER])
    def test_create_sqlserver(self, name) -> None:
        adapter = DatabaseFactory.create_connector(name, CONFIG)

        assert isinstance(adapter, SQLServerAdapter)
        assert adapter.config == DatabaseConfig.from_dict(CONFIG)
        assert adapter.connection is None

    def test_unknown_type(self) -> None:
        with pytest.raises(ValidationError, match="Unsupported"):
            DatabaseFactory.create_connector("oracle", CONFIG)

    def test_planned_type_not_implemented(self) -> None:
        with pytest.raises(ValidationError, match="not yet implemented"):
            DatabaseFactory.create_connector("postgres", CONFIG)

    def test_invalid_config(self) -> None:
        with pytest.raises(ValidationError):
            DatabaseFactory.create_connector("sqlserver", {"server": "db"})

    def test_supported_types(self) -> None:
        assert DatabaseFactory.get_supported_types() == ["sqlserver"]

    def test_required_config(self) -> None:
        assert DatabaseFactory.get_required_config("mssql") == ["server", "database", "username", "password"]


class TestConnectedAdapter:

    def test_disconnects_after_use(self) -> None:
        # Given
        adapter = MagicMock()

        # When
        with patch.object(DatabaseFactory, "create_connector", return_value=adapter):
            with connected_adapter("sqlserver", CONFIG) as active:
                assert active is adapter

        # Then
        adapter.connect.assert_called_once()
        adapter.disconnect.assert_called_once()

    def test_disconnects_on_error(self) -> None:
        adapter = MagicMock()

        with patch.object(DatabaseFactory, "create_connector", return_value=adapter):
            with pytest.raises(QueryExecutionError):
                with connected_adapter("sqlserver", CONFIG):
                    raise QueryExecutionError("boom")

        adapter.disconnect.assert_called_once()

    def test_disconnect_failure_does_not_mask_result(self) -> None:
        adapter = MagicMock()
        adapter.disconnect.side_effect = RuntimeError("socket closed")

        with patch.object(DatabaseFactory, "create_connector", return_value=adapter):
            with connected_adapter("sqlserver", CONFIG) as active:
                result = active.test_connection()

        assert result is adapter.test_connection.return_value
