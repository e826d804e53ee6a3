"""Process-wide connectivity state with explicit subscription lifecycle.

Nothing in the membership core reads this state; callers consult it to decide
whether to attempt an operation or to show an offline notice.
"""

from __future__ import annotations

from typing import Callable

from classroom_membership.logging_utils import create_service_logger

logger = create_service_logger("classroom_membership.connectivity")

ConnectivityListener = Callable[[bool], None]


class ConnectivityMonitor:
    def __init__(self, connected: bool = True) -> None:
        self._connected = connected
        self._listeners: list[ConnectivityListener] = []

    @property
    def is_connected(self) -> bool:
        return self._connected

    def set_connected(self, connected: bool) -> None:
        if connected == self._connected:
            return
        self._connected = connected
        logger.info("Connectivity changed", connected=connected)
        for listener in list(self._listeners):
            listener(connected)

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
