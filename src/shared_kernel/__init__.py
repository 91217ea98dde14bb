"""
Общее ядро (Shared Kernel) системы бронирования номеров.

Содержит общие типы данных, исключения и утилиты работы с датами,
используемые контекстом бронирования.
"""

from .dates import (
    combine_date_and_time,
    day_key,
    day_sequence,
    end_of_day,
    format_time_of_day,
    parse_day_key,
    parse_time_of_day,
    start_of_day,
    time_options,
    to_local_naive,
)
from .domain import (
    TOTAL_ROOMS,
    BookingNotFound,
    # Перечисления
    BookingStatus,
    BookingValidationError,
    BusinessRuleValidationException,
    ConcurrencyException,
    DomainEvent,
    # Исключения
    DomainException,
    # Базовые типы
    EntityId,
    InsufficientCapacity,
    InvalidTimeFormat,
    ProgramType,
    StoreFailure,
    generate_id,
    # Утилиты
    now,
    today,
)

__all__ = [
    # Базовые типы
    "EntityId",
    "TOTAL_ROOMS",
    "generate_id",
    "DomainEvent",
    # Перечисления
    "BookingStatus",
    "ProgramType",
    # Исключения
    "DomainException",
    "ConcurrencyException",
    "BusinessRuleValidationException",
    "BookingValidationError",
    "InvalidTimeFormat",
    "InsufficientCapacity",
    "BookingNotFound",
    "StoreFailure",
    # Даты и время
    "day_key",
    "parse_day_key",
    "day_sequence",
    "start_of_day",
    "end_of_day",
    "parse_time_of_day",
    "combine_date_and_time",
    "format_time_of_day",
    "time_options",
    "to_local_naive",
    # Утилиты
    "now",
    "today",
]
