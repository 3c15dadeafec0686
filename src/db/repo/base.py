from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import aiosqlite

from src.db.connection import Database
from src.domain.errors import DataUnavailable

logger = logging.getLogger(__name__)


class Repository:
    def __init__(self, db: Database) -> None:
        self._db = db

    @contextmanager
    def _reading(self, what: str) -> Iterator[None]:
        """
        Read-path guard: store failures surface as DataUnavailable.

        Zero counts must only ever mean "no facts", so a failed read is never
        turned into an empty result.
        """
        if not self._db.is_connected:
            raise DataUnavailable(f"{what}: achievement store is not connected")
        try:
            yield
        except aiosqlite.Error as e:
            logger.warning("Store read failed (%s): %s", what, e)
            raise DataUnavailable(f"{what}: {e}") from e
