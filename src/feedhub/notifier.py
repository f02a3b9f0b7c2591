"""
Collapsible change notifications.
"""

import logging
import threading
from typing import Callable, List

Listener = Callable[[], None]


class ChangeNotifier:
    """Publishes a bare "something changed" signal to subscribers.

    Calls to ``notify`` made while a dispatch is in progress are collapsed
    into a single follow-up dispatch, so a burst of mutations yields one
    recomputation per listener rather than one per mutation.
    """

    def __init__(self, name: str = "changes"):
        self.name = name
        self.logger = logging.getLogger(__name__)
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()
        self._pending = False
        self._dispatching = False

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        """Signal a change."""
        with self._lock:
            self._pending = True
            if self._dispatching:
                return
            self._dispatching = True

        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._dispatching = False
                        return
                    self._pending = False
                    listeners = list(self._listeners)
                self._dispatch(listeners)
        except BaseException:
            with self._lock:
                self._dispatching = False
            raise

    def _dispatch(self, listeners: List[Listener]) -> None:
        for listener in listeners:
            try:
                listener()
            except Exception:  # pylint: disable=broad-except
                self.logger.exception(
                    "Listener for %s notification failed", self.name
                )
