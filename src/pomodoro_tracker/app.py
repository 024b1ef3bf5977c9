from __future__ import annotations

import sys
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os

from PyQt6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QListWidget,
    QMainWindow,
    QStackedWidget,
    QWidget,
)

from .database_manager import DBConfig, DatabaseManager
from .settings_store import SettingsStore
from .session_log import SessionLog
from .goal_store import GoalStore
from .pomodoro import PomodoroService
from .stats_engine import StatisticsEngine
from .sensors import OrientationSensor, ShakeDetector
from .sensor_policy import FaceDownGuard, ShakeToggle
from .history_feed import (
    HistoricalEventCache,
    HistoricalEventsRepository,
    WikipediaClient,
    WikipediaClientConfig,
)
from .timer_page import TimerPage
from .statistics_page import StatisticsPage
from .calendar_page import CalendarPage
from .settings_page import SettingsPage
from .notification_manager import NotificationManager
from .logging_setup import configure_logging


APP_NAME = "Pomodoro Tracker"
DATA_DIR_ENV = "POMODORO_TRACKER_DATA"
WIKI_LANG_ENV = "POMODORO_TRACKER_WIKI_LANG"


@dataclass(slots=True)
class AppState:
    db_path: Path
    db: DatabaseManager
    settings_store: SettingsStore
    session_log: SessionLog
    goal_store: GoalStore
    timer: PomodoroService
    statistics: StatisticsEngine
    shake_detector: ShakeDetector
    orientation: OrientationSensor
    shake_toggle: ShakeToggle
    face_down_guard: FaceDownGuard
    history: HistoricalEventsRepository


def data_dir() -> Path:
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".pomodoro_tracker"


def get_app_state(base_dir: Optional[Path] = None, *, accelerometer: bool = False) -> AppState:
    base = base_dir or data_dir()
    base.mkdir(parents=True, exist_ok=True)
    # Logging first
    configure_logging(base)
    db_path = base / "pomodoro_tracker.sqlite"
    db = DatabaseManager(DBConfig(path=db_path))
    db.init_db()

    settings_store = SettingsStore(db)
    session_log = SessionLog(db)
    goal_store = GoalStore(db)
    timer = PomodoroService(settings_store, session_log)
    statistics = StatisticsEngine(session_log, goal_store)

    # Desktop builds have no accelerometer; a platform bridge may feed samples later
    shake_detector = ShakeDetector(available=accelerometer)
    orientation = OrientationSensor(available=accelerometer)
    shake_toggle = ShakeToggle(timer, shake_detector)
    face_down_guard = FaceDownGuard(timer, orientation)

    language = os.environ.get(WIKI_LANG_ENV, "en")
    history = HistoricalEventsRepository(
        WikipediaClient(WikipediaClientConfig(language=language)),
        HistoricalEventCache(db),
    )
    logging.getLogger(__name__).info(
        "app_state_created", extra={"_json_db": str(db_path), "_json_accelerometer": accelerometer}
    )
    return AppState(
        db_path=db_path,
        db=db,
        settings_store=settings_store,
        session_log=session_log,
        goal_store=goal_store,
        timer=timer,
        statistics=statistics,
        shake_detector=shake_detector,
        orientation=orientation,
        shake_toggle=shake_toggle,
        face_down_guard=face_down_guard,
        history=history,
    )


class Sidebar(QListWidget):
    PAGES = ["Timer", "Statistics", "Calendar", "Settings"]

    def __init__(self) -> None:
        super().__init__()
        self.addItems(self.PAGES)
        self.setFixedWidth(140)
        self.setCurrentRow(0)


class MainWindow(QMainWindow):  # pragma: no cover UI
    def __init__(self, state: AppState) -> None:  # noqa: D401
        super().__init__()
        self.state = state
        self.setWindowTitle(APP_NAME)
        self.resize(900, 640)

        self.sidebar = Sidebar()
        self.pages = QStackedWidget()
        self.pages.addWidget(TimerPage(state.timer, state.shake_toggle, state.face_down_guard))
        self.pages.addWidget(StatisticsPage(state.statistics, state.goal_store))
        self.pages.addWidget(CalendarPage(state.session_log, state.history))
        self.pages.addWidget(SettingsPage(state.settings_store))

        container = QWidget()
        container_layout = QHBoxLayout(container)
        container_layout.addWidget(self.sidebar)
        container_layout.addWidget(self.pages, 1)
        self.setCentralWidget(container)
        self.sidebar.currentRowChanged.connect(self.pages.setCurrentIndex)

        self.notification_manager = NotificationManager(
            self,
            state.timer,
            state.settings_store,
            on_play_pause=state.timer.toggle,
            on_reset=state.timer.restart,
        )

    def closeEvent(self, event) -> None:  # noqa: N802
        self.notification_manager.teardown()
        self.state.face_down_guard.shutdown()
        self.state.timer.shutdown()
        self.state.db.close()
        super().closeEvent(event)


def run(argv: Optional[list[str]] = None) -> int:
    if argv is None:
        argv = sys.argv
    app = QApplication(argv)
    app.setApplicationName(APP_NAME)
    state = get_app_state()
    window = MainWindow(state)
    window.show()
    return app.exec()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(run())
