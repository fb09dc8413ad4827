"""CLI helper tests."""

from db_browser.cli.main_cli import config_from_env, split_table_name


class TestCliHelpers:

    def test_split_table_name(self) -> None:
        assert split_table_name("sales.orders") == ("orders", "sales")
        assert split_table_name("orders") == ("orders", None)

    def test_config_from_env(self, monkeypatch) -> None:
        # Given
        monkeypatch.setenv("MSSQL_HOST", "db.local")
        monkeypatch.setenv("MSSQL_PORT", "14330")
        monkeypatch.setenv("MSSQL_USER", "reader")
        monkeypatch.setenv("MSSQL_PASSWORD", "pw")
        monkeypatch.setenv("MSSQL_DB", "shop")

        # When
        config = config_from_env()

        # Then
        assert config == {
            "server": "db.local",
            "port": "14330",
            "username": "reader",
            "password": "pw",
            "database": "shop",
        }
