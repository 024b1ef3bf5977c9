from __future__ import annotations

"""Transient message overlay shown at the top of a page."""

from PyQt6.QtCore import QTimer, Qt
from PyQt6.QtWidgets import QLabel, QWidget

_STYLES = {
    "info": "background: rgba(40,40,40,0.85); color: #fff;",
    "error": "background: rgba(160,32,32,0.9); color: #fff;",
}


class Toast(QLabel):  # pragma: no cover - UI utility
    def __init__(self, parent: QWidget, message: str, timeout_ms: int = 2500, kind: str = "info"):
        super().__init__(parent)
        self.setText(message)
        self.setStyleSheet(_STYLES.get(kind, _STYLES["info"]) + " padding: 6px 12px; border-radius: 6px;")
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.adjustSize()
        self.move(max(0, int((parent.width() - self.width()) / 2)), 24)
        self.show()
        self.raise_()
        QTimer.singleShot(timeout_ms, self.close)


def show_toast(parent: QWidget, message: str, timeout_ms: int = 2500, kind: str = "info") -> None:  # pragma: no cover
    Toast(parent, message, timeout_ms, kind)


__all__ = ["show_toast"]
