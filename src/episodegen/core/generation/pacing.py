"""Pauses entre appels de génération et jeton d'annulation."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

# Sleep injectable : (secondes, jeton) -> None
SleepFn = Callable[[float, "CancellationToken"], None]


class CancellationToken:
    """
    Jeton d'annulation partagé entre l'appelant et l'orchestrateur.
    wait() est une pause interruptible : cancel() depuis un autre thread la réveille.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout_s: float) -> bool:
        """Attend au plus timeout_s secondes ; retourne True si annulé pendant l'attente."""
        if timeout_s <= 0:
            return self._event.is_set()
        return self._event.wait(timeout_s)


def _token_sleep(delay_s: float, token: CancellationToken) -> None:
    token.wait(delay_s)


@dataclass(frozen=True)
class DelayPolicy:
    """
    Délais fixes entre appels (limite de débit du service externe).
    min_request_interval_s : écart minimal entre deux requêtes, quel que soit l'appelant (0 = libre).
    """

    style_delay_s: float = 0.5
    episode_delay_s: float = 1.5
    min_request_interval_s: float = 0.0


class Pacer:
    """
    Applique la DelayPolicy. Chaque pause vérifie le jeton avant et après :
    retourne False si la génération doit s'arrêter.
    Garde l'instant de la dernière requête (before_request) : un Pacer partagé
    espace les appels de génération et d'amélioration.
    """

    def __init__(
        self,
        policy: DelayPolicy | None = None,
        *,
        sleep: SleepFn | None = None,
        monotonic: Callable[[], float] | None = None,
    ):
        self.policy = policy or DelayPolicy()
        self._sleep = sleep or _token_sleep
        self._monotonic = monotonic or time.monotonic
        self._last_request: float | None = None
        self._lock = threading.Lock()

    def _pause(self, delay_s: float, token: CancellationToken) -> bool:
        if token.cancelled:
            return False
        if delay_s > 0:
            self._sleep(delay_s, token)
        return not token.cancelled

    def between_styles(self, token: CancellationToken) -> bool:
        return self._pause(self.policy.style_delay_s, token)

    def between_episodes(self, token: CancellationToken) -> bool:
        return self._pause(self.policy.episode_delay_s, token)

    def before_request(self, token: CancellationToken) -> bool:
        """Attend la fin de l'intervalle minimal depuis la requête précédente, puis réserve le créneau."""
        interval = self.policy.min_request_interval_s
        if token.cancelled:
            return False
        if interval <= 0:
            return True
        while True:
            with self._lock:
                now = self._monotonic()
                wait_s = 0.0 if self._last_request is None else self._last_request + interval - now
                if wait_s <= 0:
                    self._last_request = now
                    return True
            self._sleep(wait_s, token)
            if token.cancelled:
                return False
