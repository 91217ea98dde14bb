"""
Утилиты для работы с календарными днями и временем суток.

Ключ дня (day key) — строка вида ``YYYY-MM-DD`` для локального календарного
дня. Такие ключи лексикографически сортируются в хронологическом порядке и
используются для подневного учета занятых номеров.
"""

import re
from datetime import date, datetime, time, timedelta
from typing import List, Union

from .domain import InvalidTimeFormat

DateLike = Union[date, datetime]

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def to_local_naive(moment: datetime) -> datetime:
    """
    Приводит момент времени с часовым поясом к локальному времени без пояса.

    Наивные значения считаются уже локальными и возвращаются без изменений.
    """
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def _as_date(moment: DateLike) -> date:
    if isinstance(moment, datetime):
        return to_local_naive(moment).date()
    return moment


def day_key(moment: DateLike) -> str:
    """Возвращает ключ календарного дня, игнорируя время суток."""
    return _as_date(moment).isoformat()


def parse_day_key(key: str) -> date:
    """Преобразует ключ дня обратно в дату."""
    return date.fromisoformat(key)


def day_sequence(start: DateLike, end: DateLike) -> List[str]:
    """
    Возвращает ключи всех дней от дня начала до дня окончания включительно.

    Если начало и окончание приходятся на один день, результат содержит
    ровно один ключ.
    """
    current = _as_date(start)
    last = _as_date(end)
    keys = []
    while current <= last:
        keys.append(current.isoformat())
        current += timedelta(days=1)
    return keys


def start_of_day(moment: DateLike) -> datetime:
    """Первый момент календарного дня."""
    return datetime.combine(_as_date(moment), time.min)


def end_of_day(moment: DateLike) -> datetime:
    """Последний момент календарного дня."""
    return datetime.combine(_as_date(moment), time.max)


def parse_time_of_day(value: str) -> time:
    """Разбирает строку ``HH:MM`` (часы 0-23, минуты 0-59)."""
    match = _TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise InvalidTimeFormat(value)

    hours, minutes = int(match.group(1)), int(match.group(2))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise InvalidTimeFormat(value)
    return time(hours, minutes)


def combine_date_and_time(day: DateLike, time_string: str) -> datetime:
    """Объединяет дату и время суток ``HH:MM`` в один момент времени."""
    return datetime.combine(_as_date(day), parse_time_of_day(time_string))


def format_time_of_day(moment: datetime) -> str:
    """Форматирует время суток момента как ``HH:MM``."""
    return moment.strftime("%H:%M")


def time_options(step_minutes: int = 30) -> List[str]:
    """Варианты времени заезда/выезда с заданным шагом: 00:00, 00:30, ..."""
    if step_minutes <= 0 or 24 * 60 % step_minutes:
        raise ValueError("Шаг должен быть положительным делителем суток в минутах")
    return [
        f"{minute // 60:02d}:{minute % 60:02d}"
        for minute in range(0, 24 * 60, step_minutes)
    ]
