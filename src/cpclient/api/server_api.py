"""Interface of the remote server API consumed by the list models."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence


class ServerApi:
    """Base class for server API clients.

    Implementations talk to the cash point server and raise
    :class:`cpclient.errors.ServerApiError` when a request fails.  Both calls
    may block; models only invoke them from worker threads.
    """

    def fetch_ids(self, table: str) -> List[Any]:
        """Return the identifiers of every record the server holds for *table*."""
        raise NotImplementedError

    def fetch_rows(self, table: str, ids: Sequence[Any]) -> List[Dict[str, Any]]:
        """Return the records of *table* identified by *ids*."""
        raise NotImplementedError
