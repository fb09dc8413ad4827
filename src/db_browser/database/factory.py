"""
Database factory for creating appropriate database adapters
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Union

from .adapters import DatabaseAdapter, SQLServerAdapter
from .errors import ValidationError
from .models import DatabaseConfig, DatabaseType

logger = logging.getLogger(__name__)

_ALIASES = {
    'sqlserver': DatabaseType.SQLSERVER,
    'mssql': DatabaseType.SQLSERVER,
    'postgresql': DatabaseType.POSTGRESQL,
    'postgres': DatabaseType.POSTGRESQL,
    'mysql': DatabaseType.MYSQL,
}

_ADAPTERS = {
    DatabaseType.SQLSERVER: SQLServerAdapter,
}


class DatabaseFactory:
    """Factory class to create appropriate database connector"""

    @staticmethod
    def resolve_type(db_type: Union[str, DatabaseType]) -> DatabaseType:
        if isinstance(db_type, DatabaseType):
            return db_type
        resolved = _ALIASES.get(str(db_type or '').lower())
        if resolved is None:
            raise ValidationError(f"Unsupported database type: {db_type}")
        return resolved

    @staticmethod
    def create_connector(db_type: Union[str, DatabaseType],
                         config: Union[DatabaseConfig, Dict[str, Any]]) -> DatabaseAdapter:
        """Create database adapter based on type"""
        resolved = DatabaseFactory.resolve_type(db_type)
        adapter_cls = _ADAPTERS.get(resolved)
        if adapter_cls is None:
            raise ValidationError(f"Database type not yet implemented: {resolved.value}")

        if not isinstance(config, DatabaseConfig):
            config = DatabaseConfig.from_dict(config)
        return adapter_cls(config)

    @staticmethod
    def get_supported_types() -> List[str]:
        """Get list of supported database types"""
        return [db_type.value for db_type in _ADAPTERS]

    @staticmethod
    def get_required_config(db_type: Union[str, DatabaseType]) -> List[str]:
        """Get required configuration keys for database type"""
        DatabaseFactory.resolve_type(db_type)
        return list(DatabaseConfig.REQUIRED_FIELDS)


@contextmanager
def connected_adapter(db_type: Union[str, DatabaseType],
                      config: Union[DatabaseConfig, Dict[str, Any]]) -> Iterator[DatabaseAdapter]:
    """Create and connect an adapter, releasing it on every exit path"""
    adapter = DatabaseFactory.create_connector(db_type, config)
    try:
        adapter.connect()
        yield adapter
    finally:
        try:
            adapter.disconnect()
        except Exception as e:
            logger.error(f"Error disconnecting: {e}")
