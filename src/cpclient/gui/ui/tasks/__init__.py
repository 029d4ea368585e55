"""Background tasks used by the list models."""

from .server_update_worker import ServerUpdateSignals, ServerUpdateWorker

__all__ = ["ServerUpdateSignals", "ServerUpdateWorker"]
