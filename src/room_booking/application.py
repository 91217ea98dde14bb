"""
Прикладной слой контекста бронирования.

Содержит DTO и сервис приложения, через который внешние интерфейсы
проверяют доступность, создают, изменяют и удаляют бронирования.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from shared_kernel import (
    BookingNotFound,
    BookingStatus,
    BookingValidationError,
    EntityId,
    InsufficientCapacity,
    ProgramType,
    combine_date_and_time,
    to_local_naive,
)

from . import interfaces as ports
from .domain import (
    AvailabilityCalculator,
    AvailabilityResult,
    Booking,
    BookingAdmissionService,
    BookingAdmitted,
    BookingDeleted,
    BookingDetails,
    BookingPolicy,
    BookingUpdated,
    DailySummary,
    PencilBookingsEvicted,
    validation_message,
)

DEFAULT_CHECK_IN_TIME = "14:00"
DEFAULT_CHECK_OUT_TIME = "11:00"

# DTO (Data Transfer Objects) для входящих данных


class CreateBookingRequest(BookingDetails):
    """Запрос на создание бронирования."""

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_schedule(
        cls,
        program_title: str,
        program_type: ProgramType,
        number_of_rooms: int,
        check_in_date: date,
        check_out_date: date,
        check_in_time: str = DEFAULT_CHECK_IN_TIME,
        check_out_time: str = DEFAULT_CHECK_OUT_TIME,
        booking_status: BookingStatus = BookingStatus.PENCIL,
    ) -> "CreateBookingRequest":
        """Собирает запрос из дат заезда/выезда и времени в формате HH:MM."""
        return cls(
            program_title=program_title,
            program_type=program_type,
            number_of_rooms=number_of_rooms,
            booking_status=booking_status,
            start_date=combine_date_and_time(check_in_date, check_in_time),
            end_date=combine_date_and_time(check_out_date, check_out_time),
        )


class UpdateBookingRequest(BaseModel):
    """Запрос на изменение бронирования: заданные поля образуют патч."""

    model_config = ConfigDict(extra="forbid")

    program_title: Optional[str] = None
    program_type: Optional[ProgramType] = None
    number_of_rooms: Optional[int] = Field(None, ge=1)
    booking_status: Optional[BookingStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_in_local_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(v) if v is not None else None

    @model_validator(mode="after")
    def end_after_start(self):
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.end_date <= self.start_date
        ):
            raise ValueError("Дата выезда должна быть позже даты заезда")
        return self

    def to_patch(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


# DTO для исходящих данных


class CalendarEntryDTO(BaseModel):
    """Запись календаря занятости."""

    id: EntityId
    title: str
    start: datetime
    end: datetime
    booking_status: BookingStatus
    number_of_rooms: int

    @classmethod
    def from_domain(cls, booking: Booking) -> "CalendarEntryDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=booking.id,
            title=booking.display_title,
            start=booking.start_date,
            end=booking.end_date,
            booking_status=booking.booking_status,
            number_of_rooms=booking.number_of_rooms,
        )


def _parse(model_class, data):
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        raise BookingValidationError(validation_message(e)) from e


# Сервисы приложения


class BookingApplicationService:
    """Сервис приложения для работы с бронированиями."""

    def __init__(
        self,
        uow: ports.IBookingUnitOfWork,
        calculator: AvailabilityCalculator,
        id_generator: ports.IIdGenerator,
        logger: ports.ILogger,
    ):
        """Инициализирует сервис."""
        self._uow = uow
        self._calculator = calculator
        self._admission = BookingAdmissionService(calculator)
        self._id_generator = id_generator
        self._logger = logger

    @property
    def uow(self) -> ports.IBookingUnitOfWork:
        return self._uow

    @property
    def total_rooms(self) -> int:
        return self._calculator.total_rooms

    def check_availability(
        self, start: datetime, end: datetime, rooms: int
    ) -> AvailabilityResult:
        """Проверяет доступность номеров с учетом всех бронирований."""
        BookingPolicy.validate_query(start, end, rooms, self.total_rooms)
        bookings = self._uow.store.list_all()
        return self._calculator.compute(start, end, rooms, bookings)

    def check_availability_excluding(
        self,
        start: datetime,
        end: datetime,
        rooms: int,
        exclude_ids: Iterable[EntityId],
    ) -> AvailabilityResult:
        """Проверяет доступность, не учитывая указанные бронирования."""
        BookingPolicy.validate_query(start, end, rooms, self.total_rooms)
        bookings = self._uow.store.list_all()
        return self._calculator.compute_excluding(
            start, end, rooms, bookings, exclude_ids
        )

    def create_booking(
        self, request: Union[BookingDetails, Mapping[str, Any]]
    ) -> Booking:
        """
        Допускает новое бронирование.

        Подтвержденное бронирование вытесняет пересекающиеся предварительные,
        но только если после вытеснения номеров хватает. Вытеснение и
        добавление нового бронирования записываются одной операцией.
        """
        if not isinstance(request, BookingDetails):
            request = _parse(CreateBookingRequest, request)
        BookingPolicy.validate_details(request, self.total_rooms)

        with self._uow as uow:
            try:
                plan = self._admission.plan(request, uow.bookings)
            except InsufficientCapacity as e:
                self._logger.error(
                    f"Booking failed: only {e.available_rooms} rooms available "
                    f"for the requested period",
                    requested_rooms=e.requested_rooms,
                    evictions_attempted=e.evictions_attempted,
                )
                raise

            if plan.evicted:
                self._logger.info(
                    f"Identified {len(plan.evicted)} pencil booking(s) to be "
                    f"overridden by confirmed booking",
                    evicted_ids=plan.evicted_ids,
                )

            booking = Booking.from_details(request, self._id_generator.next_id())
            uow.replace(plan.bookings_to_persist(booking))

            if plan.evicted:
                uow.collect(
                    PencilBookingsEvicted(
                        confirmed_booking_id=booking.id,
                        evicted_booking_ids=plan.evicted_ids,
                    )
                )
            uow.collect(
                BookingAdmitted(
                    booking_id=booking.id,
                    booking_status=booking.booking_status,
                    number_of_rooms=booking.number_of_rooms,
                    start_date=booking.start_date,
                    end_date=booking.end_date,
                )
            )
            uow.commit()

        self._logger.info("Booking successful", booking_id=booking.id)
        return booking

    def get_booking(self, booking_id: EntityId) -> Booking:
        """Возвращает бронирование по идентификатору."""
        booking = self._uow.store.find_by_id(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking

    def list_bookings(self, status: Optional[BookingStatus] = None) -> List[Booking]:
        """Возвращает бронирования по возрастанию даты заезда."""
        bookings = self._uow.store.list_all()
        if status is not None:
            bookings = [b for b in bookings if b.booking_status == status]
        return sorted(bookings, key=lambda b: (b.start_date, b.created_at))

    def update_booking(
        self,
        booking_id: EntityId,
        patch: Union[UpdateBookingRequest, Mapping[str, Any]],
    ) -> Booking:
        """
        Применяет изменения к бронированию и сохраняет набор.

        Доступность номеров здесь не перепроверяется: это делает вызывающий
        код через check_availability_excluding, либо edit_booking.
        """
        changes = self._changes_from(patch)
        with self._uow as uow:
            updated = self._apply_update(uow, booking_id, changes)
            uow.commit()
        return updated

    def edit_booking(
        self,
        booking_id: EntityId,
        patch: Union[UpdateBookingRequest, Mapping[str, Any]],
    ) -> Booking:
        """Изменяет бронирование, предварительно проверив доступность без него."""
        changes = self._changes_from(patch)
        with self._uow as uow:
            current = self._find(uow.bookings, booking_id)
            candidate = current.merged_with(changes)
            BookingPolicy.validate_details(candidate, self.total_rooms)

            availability = self._calculator.compute_excluding(
                candidate.start_date,
                candidate.end_date,
                candidate.number_of_rooms,
                uow.bookings,
                [booking_id],
            )
            if not availability.available:
                self._logger.error(
                    f"Only {availability.available_rooms} rooms available "
                    f"for the selected dates and times",
                    booking_id=booking_id,
                )
                raise InsufficientCapacity(
                    requested_rooms=candidate.number_of_rooms,
                    available_rooms=availability.available_rooms,
                )

            updated = self._apply_update(uow, booking_id, changes)
            uow.commit()
        return updated

    def delete_booking(self, booking_id: EntityId) -> bool:
        """Удаляет бронирование; отсутствие бронирования ошибкой не считается."""
        with self._uow as uow:
            remaining = [b for b in uow.bookings if b.id != booking_id]
            if len(remaining) == len(uow.bookings):
                self._logger.debug(f"Booking {booking_id} not found, nothing to delete")
                return False

            uow.replace(remaining)
            uow.collect(BookingDeleted(booking_id=booking_id))
            uow.commit()

        self._logger.info("Booking deleted", booking_id=booking_id)
        return True

    def clear_all_bookings(self) -> None:
        """Удаляет все бронирования."""
        with self._uow as uow:
            uow.replace([])
            uow.commit()
        self._logger.warning("All bookings cleared")

    def daily_summary(self, day: date) -> DailySummary:
        """Сводка занятых и свободных номеров на день."""
        return self._calculator.summarize_day(day, self._uow.store.list_all())

    def calendar_entries(self) -> List[CalendarEntryDTO]:
        """Бронирования в виде записей календаря."""
        return [CalendarEntryDTO.from_domain(b) for b in self.list_bookings()]

    @staticmethod
    def _changes_from(
        patch: Union[UpdateBookingRequest, Mapping[str, Any]]
    ) -> Dict[str, Any]:
        if not isinstance(patch, UpdateBookingRequest):
            patch = _parse(UpdateBookingRequest, patch)
        return patch.to_patch()

    @staticmethod
    def _find(bookings: List[Booking], booking_id: EntityId) -> Booking:
        for booking in bookings:
            if booking.id == booking_id:
                return booking
        raise BookingNotFound(booking_id)

    def _apply_update(
        self,
        uow: ports.IBookingUnitOfWork,
        booking_id: EntityId,
        changes: Dict[str, Any],
    ) -> Booking:
        bookings = uow.bookings
        current = self._find(bookings, booking_id)
        updated = current.merged_with(changes)
        BookingPolicy.validate_details(updated, self.total_rooms)

        bookings[bookings.index(current)] = updated
        uow.replace(bookings)
        uow.collect(
            BookingUpdated(
                booking_id=booking_id,
                changed_fields=sorted(
                    name
                    for name in changes
                    if getattr(current, name) != getattr(updated, name)
                ),
            )
        )
        return updated
