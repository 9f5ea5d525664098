"""Save-on-mutation helper shared by the services."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from forgeflow.engine.errors import PersistenceFailure

logger = logging.getLogger(__name__)


@contextmanager
def saving(operation: str) -> Iterator[None]:
    """
    Wrap repository writes. sqlite errors surface as PersistenceFailure;
    whatever was already mutated in memory stays mutated.
    """
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("Save failed during %s: %s", operation, exc)
        raise PersistenceFailure(operation, exc) from exc
