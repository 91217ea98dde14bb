"""
Конфигурация тестов для pytest.
Добавляет директорию src в PYTHONPATH и предоставляет общие фикстуры.
"""
import sys
from datetime import datetime
from pathlib import Path
from uuid import UUID

import pytest

# Добавляем директорию с исходным кодом в PYTHONPATH
root_dir = str(Path(__file__).parent.parent / "src")
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)

from room_booking.application import BookingApplicationService  # noqa: E402
from room_booking.domain import AvailabilityCalculator, Booking  # noqa: E402
from room_booking.infrastructure import (  # noqa: E402
    BookingUnitOfWork,
    ConsoleLogger,
    InMemoryBookingStore,
    InMemoryEventBus,
    SequentialIdGenerator,
)
from shared_kernel import BookingStatus, ProgramType  # noqa: E402


@pytest.fixture
def make_booking():
    """Фабрика бронирований с последовательными идентификаторами."""
    counter = iter(range(1000, 2000))

    def _make(
        start: datetime,
        end: datetime,
        rooms: int = 10,
        status: BookingStatus = BookingStatus.PENCIL,
        title: str = "Leadership Offsite",
        booking_id: UUID = None,
    ) -> Booking:
        return Booking(
            id=booking_id or UUID(int=next(counter)),
            program_title=title,
            program_type=ProgramType.LEADERSHIP_DEVELOPMENT,
            number_of_rooms=rooms,
            booking_status=status,
            start_date=start,
            end_date=end,
            created_at=datetime(2023, 12, 1, 9, 0),
        )

    return _make


@pytest.fixture
def logger() -> ConsoleLogger:
    return ConsoleLogger()


@pytest.fixture
def event_bus(logger) -> InMemoryEventBus:
    return InMemoryEventBus(logger)


@pytest.fixture
def store() -> InMemoryBookingStore:
    return InMemoryBookingStore()


@pytest.fixture
def uow(store, event_bus, logger) -> BookingUnitOfWork:
    return BookingUnitOfWork(store=store, event_bus=event_bus, logger=logger)


@pytest.fixture
def service(uow, logger) -> BookingApplicationService:
    """Сервис приложения поверх хранилища в памяти."""
    return BookingApplicationService(
        uow=uow,
        calculator=AvailabilityCalculator(),
        id_generator=SequentialIdGenerator(),
        logger=logger,
    )
