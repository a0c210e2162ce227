"""Account request storage backends and the repository factory."""

from __future__ import annotations

from typing import Callable, Dict, Optional

from ..config import PaddockConfig, load_config
from .inmemory import InMemoryAccountRequestRepository
from .models import AccountRequest, apply_changes
from .postgres import PostgresAccountRequestRepository
from .repository import AccountRequestRepository
from .sqlite import SQLiteAccountRequestRepository

_repository_instance: AccountRequestRepository | None = None


def _sqlite(database_url: str) -> AccountRequestRepository:
    # sqlite:///abs/path.db and sqlite://relative.db both map to a file path
    return SQLiteAccountRequestRepository(database_url.partition("://")[2])


_BACKENDS: Dict[str, Callable[[str], AccountRequestRepository]] = {
    "sqlite": _sqlite,
    "postgres": PostgresAccountRequestRepository,
    "postgresql": PostgresAccountRequestRepository,
}


def repository_for_url(database_url: Optional[str]) -> AccountRequestRepository:
    """Build a fresh repository for ``database_url``.

    No URL means an in-memory store whose contents die with the process.

    Raises:
        ValueError: If the URL scheme has no backend.
    """
    if not database_url:
        return InMemoryAccountRequestRepository()
    scheme, sep, _ = database_url.partition("://")
    backend = _BACKENDS.get(scheme.lower()) if sep else None
    if backend is None:
        raise ValueError(f"Unsupported database backend: {database_url}")
    return backend(database_url)


def get_repository(
    database_url: Optional[str] = None, config: Optional[PaddockConfig] = None
) -> AccountRequestRepository:
    """Return the process-wide account request repository.

    The first call, or any call with an explicit ``database_url`` or
    ``config``, (re)builds it. Otherwise the cached instance is returned so the
    CLI and the worker share one store. Without an explicit URL the
    ``database_url`` of the loaded configuration is used, which already honours
    ``PADDOCK_DATABASE_URL`` / ``DATABASE_URL``.
    """
    global _repository_instance
    explicit = database_url is not None or config is not None
    if _repository_instance is None or explicit:
        if database_url is None:
            database_url = (config or load_config()).database_url
        _repository_instance = repository_for_url(database_url)
    return _repository_instance


__all__ = [
    "AccountRequest",
    "AccountRequestRepository",
    "InMemoryAccountRequestRepository",
    "SQLiteAccountRequestRepository",
    "PostgresAccountRequestRepository",
    "apply_changes",
    "get_repository",
    "repository_for_url",
]
