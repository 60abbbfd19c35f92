"""
Error types shared by the pipeline jobs.

Query and write failures from Supabase are translated into these at the
repository boundary so job code never has to know about PostgREST or httpx.
"""


class CRMJobError(Exception):
    """Base class for job failures."""


class ConfigurationError(CRMJobError):
    """Required configuration (credentials, endpoint) is missing or invalid."""


class QueryError(CRMJobError):
    """The data store was unreachable or rejected a read."""

    def __init__(self, message: str, table: str = "", code: str = ""):
        super().__init__(message)
        self.table = table
        self.code = code


class WriteError(CRMJobError):
    """The data store rejected an insert or update."""

    def __init__(self, message: str, table: str = "", code: str = ""):
        super().__init__(message)
        self.table = table
        self.code = code

    @property
    def is_unique_violation(self) -> bool:
        return self.code == "23505"


class RecordError(CRMJobError, ValueError):
    """A row returned by the store does not have the expected shape."""
