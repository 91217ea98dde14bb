"""
Основные доменные типы и утилиты общего ядра.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

# Общие типы идентификаторов
EntityId = UUID

# Общее количество одинаковых номеров в отеле
TOTAL_ROOMS = 133


def generate_id() -> UUID:
    """Генерирует новый UUID."""
    return uuid4()


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=datetime.now)

    @property
    def event_type(self) -> str:
        return type(self).__name__


# Общие перечисления
class BookingStatus(str, Enum):
    """Статусы бронирования. Подтвержденное имеет приоритет над предварительным."""

    PENCIL = "pencil"
    CONFIRMED = "confirmed"


class ProgramType(str, Enum):
    """Типы программ, под которые бронируются номера."""

    LEADERSHIP_DEVELOPMENT = "Leadership Development Program"
    EXECUTIVE_TRAINING = "Executive Training"
    TEAM_BUILDING = "Team Building Workshop"
    CORPORATE_RETREAT = "Corporate Retreat"
    CONFERENCE = "Conference"
    OTHER = "Other"


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    pass


class ConcurrencyException(DomainException):
    """Исключение при конфликте версий."""

    pass


class BusinessRuleValidationException(DomainException):
    """Исключение при нарушении бизнес-правил."""

    pass


class BookingValidationError(BusinessRuleValidationException, ValueError):
    """Некорректные значения полей бронирования."""

    pass


class InvalidTimeFormat(BookingValidationError):
    """Строка времени не соответствует формату HH:MM."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Некорректный формат времени: {value!r} (ожидается HH:MM)")


class InsufficientCapacity(BusinessRuleValidationException):
    """Недостаточно свободных номеров на запрошенный период."""

    def __init__(
        self,
        requested_rooms: int,
        available_rooms: int,
        evictions_attempted: bool = False,
    ):
        self.requested_rooms = requested_rooms
        self.available_rooms = available_rooms
        self.evictions_attempted = evictions_attempted
        message = (
            f"Доступно только {available_rooms} номеров на запрошенный период "
            f"(запрошено {requested_rooms})"
        )
        if evictions_attempted:
            message += " с учетом вытеснения предварительных бронирований"
        super().__init__(message)


class BookingNotFound(DomainException):
    """Бронирование с указанным идентификатором не найдено."""

    def __init__(self, booking_id: EntityId):
        self.booking_id = booking_id
        super().__init__(f"Бронирование {booking_id} не найдено")


class StoreFailure(DomainException):
    """Ошибка чтения или записи хранилища бронирований."""

    pass


# Общие утилиты
def now() -> datetime:
    """Возвращает текущую дату и время (локальное время)."""
    return datetime.now()


def today() -> date:
    """Возвращает текущую дату."""
    return date.today()

