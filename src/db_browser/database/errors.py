"""
Error taxonomy for database access and schema introspection
"""

from typing import Any, Optional


class DataBrowserError(Exception):
    """Base class for all browser errors"""

    def __init__(self, message: str, code: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class DatabaseConnectionError(DataBrowserError, ConnectionError):
    """Failure to establish or authenticate a connection"""


class IntrospectionError(DataBrowserError):
    """Failure to read catalog metadata for one table or schema"""

    def __init__(self, message: str, code: Optional[Any] = None,
                 table: Optional[str] = None, schema: Optional[str] = None):
        super().__init__(message, code)
        self.table = table
        self.schema = schema


class QueryExecutionError(DataBrowserError):
    """Failure of a data-read statement"""


class ValidationError(DataBrowserError, ValueError):
    """Malformed input to a public operation"""


def error_code(exc: BaseException) -> Optional[Any]:
    """Extract the engine error number from a driver exception, if any"""
    orig = getattr(exc, 'orig', None) or exc
    args = getattr(orig, 'args', ())
    if args and isinstance(args[0], int):
        return args[0]
    return getattr(orig, 'number', None)
