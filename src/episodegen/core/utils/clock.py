"""Horloge et générateur d'identifiants injectables (tests déterministes)."""

from __future__ import annotations

import itertools
import time
import uuid
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float:
        """Horodatage epoch en secondes."""
        ...


class IdFactory(Protocol):
    def __call__(self) -> str:
        ...


class SystemClock:
    def now(self) -> float:
        return time.time()


class FixedClock:
    """Horloge figée."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now


def uuid_id_factory() -> str:
    return uuid.uuid4().hex


class SequentialIdFactory:
    """Identifiants prévisibles : file-1, file-2, ..."""

    def __init__(self, prefix: str = "file"):
        self._prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self._prefix}-{next(self._counter)}"
