"""
ColonyBot Logger - one log file per run, plus INFO on the console.

Every tick is independent, so the [tick] column is the only way to line up
a unit's task choice with the outcome it got.

    from ColonyBot.logger import get_logger

    log = get_logger()
    log.debug("Ledger entry %s: %d energy", entry.id, entry.energy, tick=1234)
    log.colony_event("SPAWN", "Spawn1 -> carrier C7K (550 energy)", tick=1234)
    log.task("W3A", "repair", "5bbcab", tick=1234)

The file is written to logs/colony_<timestamp>.log under the working
directory.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional


LOG_DIR = Path("logs")

# Between DEBUG and INFO, and between INFO and WARNING.
TASK_LEVEL = 15
COLONY_EVENT_LEVEL = 25

logging.addLevelName(TASK_LEVEL, "TASK")
logging.addLevelName(COLONY_EVENT_LEVEL, "COLONY")


class TickFormatter(logging.Formatter):
    """
    Fills the tick column from the record's 'tick' extra ('-' when absent):

        2026-02-19 21:14:05 | COLONY  |   48211 | SPAWN | Spawn1 -> harvester H4
        2026-02-19 21:14:05 | TASK    |   48211 | W3A | withdraw -> 5bbcab [NOT_IN_RANGE]
    """

    FMT = "%(asctime)s | %(levelname)-7s | %(tick_col)7s | %(message)s"
    DATE_FMT = "%Y-%m-%d %H:%M:%S"

    def format(self, record: logging.LogRecord) -> str:
        tick = getattr(record, "tick", None)
        record.tick_col = "-" if tick is None else str(tick)
        return super().format(record)


_logger_instance: Optional["ColonyLogger"] = None


def get_logger() -> "ColonyLogger":
    """The process-wide ColonyLogger, created on first use."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = ColonyLogger()
    return _logger_instance


class ColonyLogger:
    """Standard logging with a tick keyword and colony-specific helpers."""

    def __init__(self, name: str = "colony") -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(logging.DEBUG)
        if not self._logger.handlers:
            self._add_handlers()

    def _add_handlers(self) -> None:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = LOG_DIR / f"colony_{datetime.now():%Y%m%d_%H%M%S}.log"
        formatter = TickFormatter(TickFormatter.FMT, TickFormatter.DATE_FMT)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(formatter)

        self._logger.addHandler(file_handler)
        self._logger.addHandler(console_handler)

    # ── Standard levels ───────────────────────────────────────────────────────

    def debug(self, msg: str, *args, tick: Optional[int] = None) -> None:
        self._logger.debug(msg, *args, extra={"tick": tick})

    def info(self, msg: str, *args, tick: Optional[int] = None) -> None:
        self._logger.info(msg, *args, extra={"tick": tick})

    def warning(self, msg: str, *args, tick: Optional[int] = None) -> None:
        self._logger.warning(msg, *args, extra={"tick": tick})

    def exception(self, msg: str, *args, tick: Optional[int] = None) -> None:
        self._logger.exception(msg, *args, extra={"tick": tick})

    # ── Colony helpers ────────────────────────────────────────────────────────

    def colony_event(self, event_type: str, detail: str, tick: Optional[int] = None) -> None:
        """Named colony event: spawns, wipe-out changes, safe mode, hostiles."""
        self._logger.log(
            COLONY_EVENT_LEVEL, "%s | %s", event_type.upper(), detail, extra={"tick": tick}
        )

    def task(
        self,
        unit_name: str,
        action: str,
        target: Optional[str],
        tick: Optional[int] = None,
        outcome: Optional[str] = None,
    ) -> None:
        """A unit's task choice, or the outcome of acting on it."""
        suffix = f" [{outcome}]" if outcome is not None else ""
        self._logger.log(
            TASK_LEVEL,
            "%s | %s -> %s%s",
            unit_name,
            action,
            target if target is not None else "-",
            suffix,
            extra={"tick": tick},
        )

    def stats(self, counters: Mapping[str, int], tick: Optional[int] = None) -> None:
        self._logger.debug(
            "Stats | %s",
            " ".join(f"{key}={value}" for key, value in sorted(counters.items())),
            extra={"tick": tick},
        )
