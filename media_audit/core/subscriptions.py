from __future__ import annotations

from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal


class Subscription(QObject):
    """
    Cancellable handle for a signal connection.

    Attributes:
        cancelled: Signal emitted once when the subscription is cancelled
    """
    cancelled = pyqtSignal()

    def __init__(self, signal, slot: Callable, parent: QObject | None = None):
        super().__init__(parent)
        self._signal = signal
        self._slot = slot
        self._active = True
        signal.connect(slot)

    def cancel(self) -> None:
        """Disconnect the slot. Safe to call multiple times."""
        if not self._active:
            return
        self._active = False
        self._signal.disconnect(self._slot)
        self.cancelled.emit()

    @property
    def active(self) -> bool:
        return self._active
