"""
Интерфейсы (порты) для контекста бронирования.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol, Sequence, Type, TypeVar

from shared_kernel import DomainEvent, EntityId

from .domain import Booking

T_Event = TypeVar("T_Event", bound=DomainEvent)


@dataclass(frozen=True)
class BookingSnapshot:
    """Полный набор бронирований и версия хранилища на момент чтения."""

    bookings: List[Booking] = field(default_factory=list)
    version: int = 0


class ILogger(Protocol):
    """Интерфейс для логгера."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...


class IEventBus(Protocol):
    """Интерфейс для шины событий."""

    def publish(self, event: DomainEvent) -> None: ...
    def subscribe(
        self, event_type: Type[T_Event], handler: Callable[[T_Event], None]
    ) -> None: ...


class IIdGenerator(Protocol):
    """Источник уникальных идентификаторов бронирований."""

    def next_id(self) -> EntityId: ...


class IBookingStore(Protocol):
    """
    Интерфейс хранилища бронирований.

    Хранилище держит весь набор бронирований как один снимок. Единственная
    операция изменения - replace_all: вызывающий код читает весь набор,
    преобразует его и записывает обратно целиком.
    """

    def snapshot(self) -> BookingSnapshot: ...
    def list_all(self) -> List[Booking]: ...
    def find_by_id(self, booking_id: EntityId) -> Optional[Booking]: ...
    def replace_all(
        self, bookings: Sequence[Booking], expected_version: Optional[int] = None
    ) -> int: ...
    def clear(self) -> None: ...


class IBookingUnitOfWork(Protocol):
    """Интерфейс Unit of Work для контекста бронирования."""

    @property
    def bookings(self) -> List[Booking]: ...
    @property
    def store(self) -> IBookingStore: ...
    @property
    def event_bus(self) -> IEventBus: ...

    def __enter__(self) -> IBookingUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...
    def replace(self, bookings: Sequence[Booking]) -> None: ...
    def collect(self, event: DomainEvent) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
