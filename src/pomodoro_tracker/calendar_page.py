from __future__ import annotations

"""Calendar page: month view of focus days plus "on this day" events.

 - Days with recorded sessions are highlighted; selecting a day shows its totals.
 - Historical events load on a worker thread and come back through a Qt signal.
 - Events rotate five at a time every 15 seconds; manual paging restarts the
   rotation.
"""

from datetime import date
import logging
import threading

from PyQt6.QtCore import QDate, QTimer, pyqtSignal
from PyQt6.QtGui import QColor, QTextCharFormat
from PyQt6.QtWidgets import (
    QCalendarWidget,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from .errors import HistoryFeedError, PersistenceError
from .history_feed import HistoricalEventsRepository, carousel_page
from .models import DaySession, HistoricalEvent
from .session_log import SessionLog

CAROUSEL_INTERVAL_MS = 15_000

_log = logging.getLogger(__name__)


def describe_day(day: date, record: DaySession | None) -> str:
    if record is None or record.completed_sessions == 0:
        return f"{day.isoformat()}: no sessions"
    return (
        f"{day.isoformat()}: {record.completed_sessions} pomodoros, "
        f"{record.hours}h {record.minutes}m focus"
    )


class CalendarPage(QWidget):  # pragma: no cover heavy UI
    events_loaded = pyqtSignal(object, str)  # list[HistoricalEvent], error message

    def __init__(self, session_log: SessionLog, history: HistoricalEventsRepository):
        super().__init__()
        self._session_log = session_log
        self._history = history
        self._days: dict[date, DaySession] = {}
        self._events: list[HistoricalEvent] = []
        self._page = 0

        self.calendar = QCalendarWidget()
        self.calendar.setGridVisible(True)
        self.day_label = QLabel()
        self.events_list = QListWidget()
        self.events_list.setWordWrap(True)
        self.events_status = QLabel()
        self.btn_prev = QPushButton("<")
        self.btn_next = QPushButton(">")
        self.btn_refresh = QPushButton("Refresh")

        nav = QHBoxLayout()
        nav.addWidget(QLabel("On this day"))
        nav.addStretch(1)
        for b in (self.btn_prev, self.btn_next, self.btn_refresh):
            nav.addWidget(b)

        left = QVBoxLayout()
        left.addWidget(self.calendar)
        left.addWidget(self.day_label)
        right = QVBoxLayout()
        right.addLayout(nav)
        right.addWidget(self.events_list, 1)
        right.addWidget(self.events_status)

        layout = QHBoxLayout(self)
        layout.addLayout(left, 1)
        layout.addLayout(right, 1)

        self._carousel = QTimer(self)
        self._carousel.setInterval(CAROUSEL_INTERVAL_MS)
        self._carousel.timeout.connect(lambda: self._show_page(self._page + 1))

        self.calendar.selectionChanged.connect(self._on_date_changed)
        self.btn_prev.clicked.connect(lambda: self._manual_page(-1))
        self.btn_next.clicked.connect(lambda: self._manual_page(1))
        self.btn_refresh.clicked.connect(lambda: self._load_events(refresh=True))
        self.events_loaded.connect(self._on_events_loaded)
        self._session_log.changed.connect(lambda _d: self._reload_days())

        self._reload_days()
        self._load_events(refresh=False)

    # --- Work days ----------------------------------------------------
    def _reload_days(self) -> None:
        try:
            self._days = self._session_log.read_all()
        except PersistenceError as e:
            _log.warning("calendar could not read session log: %s", e)
            self._days = {}
        fmt = QTextCharFormat()
        fmt.setBackground(QColor("#f6c1b3"))
        for d in self._days:
            self.calendar.setDateTextFormat(QDate(d.year, d.month, d.day), fmt)
        self._on_date_changed()

    def _on_date_changed(self) -> None:
        qd = self.calendar.selectedDate()
        day = date(qd.year(), qd.month(), qd.day())
        self.day_label.setText(describe_day(day, self._days.get(day)))

    # --- Historical events ---------------------------------------------
    def _load_events(self, *, refresh: bool) -> None:
        self.events_status.setText("Loading…")
        self.btn_refresh.setEnabled(False)

        def worker():
            try:
                events = self._history.refresh() if refresh else self._history.all_events()
            except (HistoryFeedError, PersistenceError) as e:
                self.events_loaded.emit([], str(e))
                return
            self.events_loaded.emit(events, "" if events else "No historical events found for today")

        threading.Thread(target=worker, daemon=True).start()

    def _on_events_loaded(self, events: list[HistoricalEvent], error: str) -> None:
        self.btn_refresh.setEnabled(True)
        self.events_status.setText(error)
        if error and not events:
            # Keep whatever was displayed before the failed refresh
            return
        self._events = events
        self._show_page(0)
        self._carousel.start()

    def _show_page(self, index: int) -> None:
        page, total = carousel_page(self._events, index)
        self._page = index % total if total else 0
        self.events_list.clear()
        for e in page:
            self.events_list.addItem(f"{e.year}: {e.description}")
        if total:
            self.events_status.setText(f"{self._page + 1} / {total}")

    def _manual_page(self, step: int) -> None:
        if not self._events:
            return
        self._carousel.stop()
        self._show_page(self._page + step)
        self._carousel.start()


__all__ = ["CalendarPage", "describe_day"]
