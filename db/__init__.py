"""
db/ - Database Layer
====================
Wraps a single MySQL connection behind insert/select/update/remove verbs.
This layer depends only on models/ and utils/.
"""

from db.client import DatabaseClient, build_dsn
from db.errors import DatabaseOperationError, ErrorKind

__all__ = [
    "DatabaseClient",
    "DatabaseOperationError",
    "ErrorKind",
    "build_dsn",
]
