"""
Инфраструктурный слой контекста бронирования.

Содержит реализации хранилищ, генераторов идентификаторов, логгера,
шины событий и Unit of Work.
"""

import itertools
import json
import os
import sys
import tempfile
from collections import Counter
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, Union
from uuid import UUID

from pydantic import TypeAdapter
from shared_kernel import (
    TOTAL_ROOMS,
    BookingValidationError,
    ConcurrencyException,
    DomainEvent,
    EntityId,
    StoreFailure,
    generate_id,
)

from . import interfaces as ports
from .domain import Booking
from .interfaces import BookingSnapshot

_BOOKING_LIST = TypeAdapter(List[Booking])


def _ensure_unique_ids(bookings: Sequence[Booking]) -> None:
    duplicates = [
        booking_id
        for booking_id, count in Counter(b.id for b in bookings).items()
        if count > 1
    ]
    if duplicates:
        raise BookingValidationError(
            f"Повторяющиеся идентификаторы бронирований: {duplicates}"
        )


def _ensure_within_capacity(bookings: Sequence[Booking], total_rooms: int) -> None:
    oversized = [b.id for b in bookings if b.number_of_rooms > total_rooms]
    if oversized:
        raise BookingValidationError(
            f"Бронирования превышают общую вместимость ({total_rooms}): {oversized}"
        )


def _check_version(expected_version: Optional[int], actual_version: int) -> None:
    if expected_version is not None and expected_version != actual_version:
        raise ConcurrencyException(
            f"Набор бронирований изменился: ожидалась версия {expected_version}, "
            f"текущая {actual_version}"
        )


_LEGACY_FIELDS = {
    "programTitle": "program_title",
    "programType": "program_type",
    "numberOfRooms": "number_of_rooms",
    "bookingStatus": "booking_status",
    "startDate": "start_date",
    "endDate": "end_date",
    "createdAt": "created_at",
}


def _from_legacy_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Переводит запись старого формата (camelCase, числовой id) в текущий."""
    if not isinstance(record, dict) or not _LEGACY_FIELDS.keys() & record.keys():
        return record

    converted = {
        _LEGACY_FIELDS[key]: value
        for key, value in record.items()
        if key in _LEGACY_FIELDS
    }
    legacy_id = record.get("id")
    if isinstance(legacy_id, int) and not isinstance(legacy_id, bool):
        converted["id"] = UUID(int=legacy_id)
    else:
        converted["id"] = legacy_id
    return converted


class InMemoryBookingStore(ports.IBookingStore):
    """Хранилище бронирований в памяти."""

    def __init__(
        self,
        bookings: Optional[Sequence[Booking]] = None,
        total_rooms: int = TOTAL_ROOMS,
    ):
        self._total_rooms = total_rooms
        _ensure_within_capacity(bookings or [], total_rooms)
        self._bookings: List[Booking] = [
            booking.model_copy(deep=True) for booking in bookings or []
        ]
        self._version = 0

    def snapshot(self) -> BookingSnapshot:
        return BookingSnapshot(
            bookings=[booking.model_copy(deep=True) for booking in self._bookings],
            version=self._version,
        )

    def list_all(self) -> List[Booking]:
        return self.snapshot().bookings

    def find_by_id(self, booking_id: EntityId) -> Optional[Booking]:
        for booking in self._bookings:
            if booking.id == booking_id:
                return booking.model_copy(deep=True)
        return None

    def replace_all(
        self, bookings: Sequence[Booking], expected_version: Optional[int] = None
    ) -> int:
        _check_version(expected_version, self._version)
        _ensure_unique_ids(bookings)
        _ensure_within_capacity(bookings, self._total_rooms)
        self._bookings = [booking.model_copy(deep=True) for booking in bookings]
        self._version += 1
        return self._version

    def clear(self) -> None:
        self.replace_all([])


class JsonFileBookingStore(ports.IBookingStore):
    """
    Хранилище бронирований в одном JSON-файле.

    Формат файла: ``{"version": <int>, "bookings": [<бронирование>, ...]}``,
    даты и время - в ISO-8601. Файл, содержащий просто список бронирований,
    читается как версия 0; записи такого списка могут быть и в старом формате
    с ключами в camelCase и числовыми идентификаторами. Бронирования, которым
    не хватает общей вместимости, при чтении считаются повреждением. Запись идет во временный файл рядом с основным и
    затем атомарно подменяет его.
    """

    def __init__(self, file_path: Union[str, Path], total_rooms: int = TOTAL_ROOMS):
        """
        Инициализирует хранилище.

        Args:
            file_path: Путь к JSON-файлу с бронированиями
            total_rooms: Общее количество номеров
        """
        self._file_path = Path(file_path)
        self._total_rooms = total_rooms

    @property
    def file_path(self) -> Path:
        return self._file_path

    def _load(self) -> BookingSnapshot:
        """Загружает снимок из JSON-файла."""
        if not self._file_path.exists():
            return BookingSnapshot()

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = f.read()

            if not raw_data.strip():
                return BookingSnapshot()

            payload = json.loads(raw_data)
            if isinstance(payload, list):
                payload = {
                    "version": 0,
                    "bookings": [_from_legacy_record(record) for record in payload],
                }

            bookings = _BOOKING_LIST.validate_python(payload["bookings"])
            _ensure_within_capacity(bookings, self._total_rooms)
            return BookingSnapshot(bookings=bookings, version=int(payload["version"]))
        except (OSError, ValueError, KeyError, TypeError) as e:
            # ValidationError, JSONDecodeError и BookingValidationError - подклассы ValueError
            raise StoreFailure(
                f"Не удалось прочитать бронирования из {self._file_path}: {e}"
            ) from e

    def _save(self, bookings: Sequence[Booking], version: int) -> None:
        """Сохраняет снимок в JSON-файл."""
        payload = {
            "version": version,
            "bookings": [booking.model_dump(mode="json") for booking in bookings],
        }

        try:
            # Создаем директорию, если она не существует
            self._file_path.parent.mkdir(parents=True, exist_ok=True)

            fd, tmp_name = tempfile.mkstemp(
                dir=self._file_path.parent, prefix=f".{self._file_path.name}."
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self._file_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreFailure(
                f"Не удалось записать бронирования в {self._file_path}: {e}"
            ) from e

    def snapshot(self) -> BookingSnapshot:
        return self._load()

    def list_all(self) -> List[Booking]:
        return self._load().bookings

    def find_by_id(self, booking_id: EntityId) -> Optional[Booking]:
        return next(
            (booking for booking in self._load().bookings if booking.id == booking_id),
            None,
        )

    def replace_all(
        self, bookings: Sequence[Booking], expected_version: Optional[int] = None
    ) -> int:
        current_version = self._load().version
        _check_version(expected_version, current_version)
        _ensure_unique_ids(bookings)
        _ensure_within_capacity(bookings, self._total_rooms)

        new_version = current_version + 1
        self._save(bookings, new_version)
        return new_version

    def clear(self) -> None:
        self.replace_all([])


class UuidIdGenerator(ports.IIdGenerator):
    """Генерирует случайные UUID."""

    def next_id(self) -> EntityId:
        return generate_id()


class SequentialIdGenerator(ports.IIdGenerator):
    """Генерирует UUID из монотонного счетчика: 00000000-...-000000000001 и т.д."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def next_id(self) -> EntityId:
        return UUID(int=next(self._counter))


class ConsoleLogger(ports.ILogger):
    """Простая реализация логгера, выводящая сообщения в консоль."""

    def __init__(self, debug_enabled: bool = False):
        self.debug_enabled = debug_enabled

    def _emit(self, level: str, message: str, stream: Any, **kwargs: Any) -> None:
        print(f"[{level}] {message}", file=stream, flush=True)
        if kwargs:
            print(
                "  Context:",
                json.dumps(kwargs, default=str, indent=2, ensure_ascii=False),
                file=stream,
                flush=True,
            )

    def info(self, message: str, **kwargs: Any) -> None:
        self._emit("INFO", message, sys.stdout, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._emit("ERROR", message, sys.stderr, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._emit("WARNING", message, sys.stderr, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        if self.debug_enabled:
            self._emit("DEBUG", message, sys.stdout, **kwargs)


class InMemoryEventBus(ports.IEventBus):
    """
    Синхронная шина событий в памяти.

    Обработчик, подписанный на базовый класс события, получает и события его
    подклассов: подписка на DomainEvent означает все события бронирований.
    Ошибка обработчика записывается в лог и не мешает остальным обработчикам.
    """

    def __init__(self, logger: Optional[ports.ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], List[Callable[..., None]]] = {}
        self._logger = logger or ConsoleLogger()

    def _handlers_for(self, event: DomainEvent) -> List[Callable[..., None]]:
        handlers: List[Callable[..., None]] = []
        for event_class in type(event).__mro__:
            for handler in self._subscribers.get(event_class, []):
                if handler not in handlers:
                    handlers.append(handler)
        return handlers

    def publish(self, event: DomainEvent) -> None:
        """Публикует событие всем подходящим обработчикам."""
        handlers = self._handlers_for(event)
        if not handlers:
            self._logger.debug(f"No subscribers for event type {event.event_type}")
            return

        self._logger.info(
            f"Publishing {event.event_type} to {len(handlers)} handler(s)",
            event_id=event.event_id,
        )
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                self._logger.error(
                    f"Error in event handler for {event.event_type}",
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                    event=event.model_dump(mode="json"),
                )

    def subscribe(
        self, event_type: Type[DomainEvent], handler: Callable[..., None]
    ) -> None:
        """Подписывает обработчик на события указанного типа и его подклассов."""
        self._subscribers.setdefault(event_type, []).append(handler)
        self._logger.debug(f"Subscribed handler to {event_type.__name__} events")


class BookingUnitOfWork(ports.IBookingUnitOfWork):
    """
    Единица работы для контекста бронирования.

    При входе читает снимок хранилища, изменения копит в рабочем наборе и при
    фиксации записывает его целиком с проверкой версии снимка. Если набор в
    хранилище успел измениться, фиксация падает с ConcurrencyException и
    ничего не записывается. События публикуются только после записи.
    """

    def __init__(
        self,
        store: Optional[ports.IBookingStore] = None,
        event_bus: Optional[ports.IEventBus] = None,
        logger: Optional[ports.ILogger] = None,
    ):
        self._store = store or InMemoryBookingStore()
        self._logger = logger or ConsoleLogger()
        self._event_bus = event_bus or InMemoryEventBus(self._logger)
        self._snapshot: Optional[BookingSnapshot] = None
        self._bookings: List[Booking] = []
        self._events: List[DomainEvent] = []
        self._dirty = False

    @property
    def store(self) -> ports.IBookingStore:
        return self._store

    @property
    def event_bus(self) -> ports.IEventBus:
        return self._event_bus

    @property
    def bookings(self) -> List[Booking]:
        """Рабочий набор бронирований (копия, изменения - через replace)."""
        self._ensure_open()
        return list(self._bookings)

    @property
    def version(self) -> int:
        self._ensure_open()
        return self._snapshot.version

    def _ensure_open(self) -> None:
        if self._snapshot is None:
            raise RuntimeError("BookingUnitOfWork is not open")

    def replace(self, bookings: Sequence[Booking]) -> None:
        """Заменяет рабочий набор; запись произойдет при commit."""
        self._ensure_open()
        self._bookings = list(bookings)
        self._dirty = True

    def collect(self, event: DomainEvent) -> None:
        """Откладывает событие до успешной фиксации."""
        self._ensure_open()
        self._events.append(event)

    def commit(self) -> None:
        """Фиксирует все изменения."""
        self._ensure_open()
        if self._dirty:
            new_version = self._store.replace_all(
                self._bookings, expected_version=self._snapshot.version
            )
            self._snapshot = BookingSnapshot(
                bookings=list(self._bookings), version=new_version
            )
            self._dirty = False
            self._logger.info(
                "BookingUnitOfWork committed",
                version=new_version,
                bookings=len(self._bookings),
            )

        events, self._events = self._events, []
        for event in events:
            self._event_bus.publish(event)

    def rollback(self) -> None:
        """Откатывает все изменения."""
        if self._snapshot is not None:
            self._bookings = list(self._snapshot.bookings)
        self._events = []
        self._dirty = False
        self._logger.warning("BookingUnitOfWork rolled back")

    def __enter__(self) -> "BookingUnitOfWork":
        self._snapshot = self._store.snapshot()
        self._bookings = list(self._snapshot.bookings)
        self._events = []
        self._dirty = False
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self._snapshot = None
        return False  # Пробрасываем исключение дальше, если оно было
