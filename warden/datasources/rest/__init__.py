"""REST data source handler."""

from warden.datasources.rest.handler import (
    MAX_BYTES_LIMIT,
    REQUEST_TIMEOUT,
    RestHandler,
    new_handler_from_def,
)

__all__ = [
    "MAX_BYTES_LIMIT",
    "REQUEST_TIMEOUT",
    "RestHandler",
    "new_handler_from_def",
]
