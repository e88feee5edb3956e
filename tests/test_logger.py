import logging

from ColonyBot.logger import COLONY_EVENT_LEVEL, TickFormatter, get_logger


def _record(**extra):
    record = logging.LogRecord("colony", logging.INFO, __file__, 1, "Spawned %s", ("H4",), None)
    record.__dict__.update(extra)
    return record


def test_tick_column_is_filled_from_the_extra():
    formatter = TickFormatter(TickFormatter.FMT, TickFormatter.DATE_FMT)
    line = formatter.format(_record(tick=48211))
    assert line.endswith("|   48211 | Spawned H4")


def test_missing_tick_shows_a_dash():
    formatter = TickFormatter(TickFormatter.FMT, TickFormatter.DATE_FMT)
    line = formatter.format(_record(tick=None))
    assert line.endswith("|       - | Spawned H4")


def test_colony_events_use_their_own_level(caplog):
    with caplog.at_level(logging.DEBUG, logger="colony"):
        get_logger().colony_event("safe_mode", "W1N1 spawn under attack", tick=7)

    record = caplog.records[-1]
    assert record.levelno == COLONY_EVENT_LEVEL
    assert record.getMessage() == "SAFE_MODE | W1N1 spawn under attack"
    assert record.tick == 7
