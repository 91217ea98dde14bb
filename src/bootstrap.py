from typing import Any, Dict, Optional

from room_booking.application import BookingApplicationService
from room_booking.domain import AvailabilityCalculator
from room_booking.infrastructure import (
    BookingUnitOfWork,
    ConsoleLogger,
    InMemoryBookingStore,
    InMemoryEventBus,
    JsonFileBookingStore,
    SequentialIdGenerator,
    UuidIdGenerator,
)
from settings import Settings


def bootstrap_app(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or Settings.from_env()

    # 1. Инфраструктура: логгер, шина событий, хранилище
    logger = ConsoleLogger(debug_enabled=settings.debug)
    event_bus = InMemoryEventBus(logger)
    if settings.storage_path is not None:
        store = JsonFileBookingStore(
            settings.storage_path, total_rooms=settings.total_rooms
        )
    else:
        store = InMemoryBookingStore(total_rooms=settings.total_rooms)

    # 2. Unit of Work поверх хранилища
    uow = BookingUnitOfWork(store=store, event_bus=event_bus, logger=logger)

    # 3. Сервис приложения
    if settings.id_strategy == "sequential":
        # Продолжаем нумерацию после уже сохраненных бронирований
        last = max((booking.id.int for booking in store.list_all()), default=0)
        id_generator = SequentialIdGenerator(start=last + 1)
    else:
        id_generator = UuidIdGenerator()
    booking_service = BookingApplicationService(
        uow=uow,
        calculator=AvailabilityCalculator(settings.total_rooms),
        id_generator=id_generator,
        logger=logger,
    )

    # Возвращаем настроенные компоненты
    return {
        "settings": settings,
        "store": store,
        "event_bus": event_bus,
        "booking_uow": uow,
        "booking_service": booking_service,
    }
