"""
Доменная модель контекста бронирования.

Содержит бронирование, результат проверки доступности, калькулятор
подневной загрузки и доменный сервис допуска новых бронирований
(подтвержденные бронирования вытесняют пересекающиеся предварительные).
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from shared_kernel import (
    TOTAL_ROOMS,
    BookingStatus,
    BookingValidationError,
    DomainEvent,
    EntityId,
    InsufficientCapacity,
    ProgramType,
    day_key,
    day_sequence,
    end_of_day,
    format_time_of_day,
    now,
    parse_day_key,
    start_of_day,
    to_local_naive,
)

IMMUTABLE_FIELDS = ("id", "created_at")


def validation_message(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(messages)


class BookingDetails(BaseModel):
    """Данные бронирования без идентификатора (кандидат на допуск)."""

    program_title: str
    program_type: ProgramType
    number_of_rooms: int = Field(..., ge=1)
    booking_status: BookingStatus = BookingStatus.PENCIL
    start_date: datetime
    end_date: datetime

    @field_validator("program_title")
    @classmethod
    def program_title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Название программы обязательно")
        return v.strip()

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_in_local_time(cls, v: datetime) -> datetime:
        return to_local_naive(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date <= self.start_date:
            if self.start_date.date() == self.end_date.date():
                raise ValueError(
                    "Время выезда должно быть позже времени заезда в тот же день"
                )
            raise ValueError("Дата выезда должна быть позже даты заезда")
        return self

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Пересекается ли полуинтервал [start_date, end_date) с [start, end)."""
        return self.end_date > start and self.start_date < end

    @property
    def is_confirmed(self) -> bool:
        return self.booking_status == BookingStatus.CONFIRMED

    @property
    def is_pencil(self) -> bool:
        return self.booking_status == BookingStatus.PENCIL


class Booking(BookingDetails):
    """Бронирование номеров под программу."""

    id: EntityId
    created_at: datetime = Field(default_factory=now)

    @field_validator("created_at")
    @classmethod
    def created_at_in_local_time(cls, v: datetime) -> datetime:
        return to_local_naive(v)

    @classmethod
    def from_details(
        cls,
        details: BookingDetails,
        booking_id: EntityId,
        created_at: Optional[datetime] = None,
    ) -> "Booking":
        """Создает бронирование из проверенных данных кандидата."""
        return cls(
            id=booking_id,
            created_at=created_at or now(),
            **details.model_dump(include=set(BookingDetails.model_fields)),
        )

    def merged_with(self, patch: Mapping[str, Any]) -> "Booking":
        """
        Возвращает копию бронирования с примененными изменениями.

        Неуказанные поля сохраняются, идентификатор и дата создания не меняются.
        Результат проходит полную валидацию модели.
        """
        for field_name in IMMUTABLE_FIELDS:
            if field_name in patch and patch[field_name] != getattr(self, field_name):
                raise BookingValidationError(f"Поле {field_name} нельзя изменить")

        data = self.model_dump()
        data.update(
            {key: value for key, value in patch.items() if key not in IMMUTABLE_FIELDS}
        )
        try:
            return Booking.model_validate(data)
        except ValidationError as e:
            raise BookingValidationError(validation_message(e)) from e

    def can_be_evicted_by(self, candidate: BookingDetails) -> bool:
        """Предварительное бронирование уступает пересекающемуся подтвержденному."""
        return (
            self.is_pencil
            and candidate.is_confirmed
            and self.overlaps(candidate.start_date, candidate.end_date)
        )

    @property
    def display_title(self) -> str:
        return f"{self.program_title} ({self.number_of_rooms} rooms)"


class BookingAdmitted(DomainEvent):
    """Событие допуска нового бронирования."""

    booking_id: EntityId
    booking_status: BookingStatus
    number_of_rooms: int
    start_date: datetime
    end_date: datetime


class PencilBookingsEvicted(DomainEvent):
    """Событие вытеснения предварительных бронирований подтвержденным."""

    confirmed_booking_id: EntityId
    evicted_booking_ids: List[EntityId]


class BookingUpdated(DomainEvent):
    """Событие изменения бронирования."""

    booking_id: EntityId
    changed_fields: List[str]


class BookingDeleted(DomainEvent):
    """Событие удаления бронирования."""

    booking_id: EntityId


class AvailabilityResult(BaseModel):
    """Результат проверки доступности номеров на период."""

    available: bool
    available_rooms: int
    requested_rooms: int
    # Ключ дня -> количество свободных номеров, по возрастанию дат
    daily_availability: Dict[str, int]
    start_date: datetime
    end_date: datetime

    @property
    def check_in_time(self) -> str:
        return format_time_of_day(self.start_date)

    @property
    def check_out_time(self) -> str:
        return format_time_of_day(self.end_date)


class DailySummary(BaseModel):
    """Загрузка номеров на один календарный день."""

    day: date
    total_rooms: int
    booked_rooms: int
    available_rooms: int

    @property
    def availability_percentage(self) -> float:
        if self.total_rooms <= 0:
            return 0.0
        return self.available_rooms / self.total_rooms * 100


class AvailabilityCalculator:
    """Подневной расчет свободных номеров в общем пуле одинаковых номеров."""

    def __init__(self, total_rooms: int = TOTAL_ROOMS):
        if total_rooms < 1:
            raise ValueError("Количество номеров должно быть положительным")
        self.total_rooms = total_rooms

    def compute(
        self,
        start: datetime,
        end: datetime,
        requested_rooms: int,
        bookings: Iterable[BookingDetails],
    ) -> AvailabilityResult:
        """
        Считает свободные номера по каждому дню периода [start, end).

        Бронирование учитывается, только если его полуинтервал пересекается с
        запрошенным. Пересекающееся бронирование занимает номера в каждом дне
        своего диапазона, попадающем в дни запрошенного периода. Итоговое
        количество свободных номеров - минимум по дням.
        """
        start, end = to_local_naive(start), to_local_naive(end)
        if end <= start:
            raise BookingValidationError("Дата выезда должна быть позже даты заезда")
        if requested_rooms < 1:
            raise BookingValidationError("Количество номеров должно быть не меньше 1")

        days = day_sequence(start, end)
        booked = dict.fromkeys(days, 0)
        first_day, last_day = parse_day_key(days[0]), parse_day_key(days[-1])

        for booking in bookings:
            if not booking.overlaps(start, end):
                continue

            effect_start = max(booking.start_date.date(), first_day)
            effect_end = min(booking.end_date.date(), last_day)
            for key in day_sequence(effect_start, effect_end):
                booked[key] += booking.number_of_rooms

        daily_availability = {key: self.total_rooms - booked[key] for key in days}
        available_rooms = min(daily_availability.values())

        return AvailabilityResult(
            available=available_rooms >= requested_rooms,
            available_rooms=available_rooms,
            requested_rooms=requested_rooms,
            daily_availability=daily_availability,
            start_date=start,
            end_date=end,
        )

    def compute_excluding(
        self,
        start: datetime,
        end: datetime,
        requested_rooms: int,
        bookings: Iterable[Booking],
        excluded_ids: Iterable[EntityId],
    ) -> AvailabilityResult:
        """То же, что compute, но без бронирований из списка исключений."""
        excluded = set(excluded_ids)
        remaining = [booking for booking in bookings if booking.id not in excluded]
        return self.compute(start, end, requested_rooms, remaining)

    def summarize_day(
        self, day: date, bookings: Iterable[BookingDetails]
    ) -> DailySummary:
        """Сводка загрузки на один календарный день."""
        result = self.compute(start_of_day(day), end_of_day(day), 1, bookings)
        available = result.daily_availability[day_key(day)]
        return DailySummary(
            day=day,
            total_rooms=self.total_rooms,
            booked_rooms=self.total_rooms - available,
            available_rooms=available,
        )


class BookingPolicy:
    """Политики и бизнес-правила для бронирований."""

    @classmethod
    def validate_query(
        cls,
        start: datetime,
        end: datetime,
        requested_rooms: int,
        total_rooms: int = TOTAL_ROOMS,
    ) -> None:
        """Проверяет параметры запроса доступности."""
        start, end = to_local_naive(start), to_local_naive(end)
        if end <= start:
            raise BookingValidationError("Дата выезда должна быть позже даты заезда")
        if requested_rooms < 1:
            raise BookingValidationError("Количество номеров должно быть не меньше 1")
        if requested_rooms > total_rooms:
            raise BookingValidationError(
                f"Количество номеров не может превышать общую вместимость ({total_rooms})"
            )

    @classmethod
    def validate_details(
        cls, details: BookingDetails, total_rooms: int = TOTAL_ROOMS
    ) -> None:
        """Проверяет правила, не выраженные в самой модели."""
        if details.number_of_rooms > total_rooms:
            raise BookingValidationError(
                f"Количество номеров не может превышать общую вместимость ({total_rooms})"
            )


class AdmissionPlan(BaseModel):
    """Результат успешной проверки допуска: что вытеснить и что сохранить."""

    candidate: BookingDetails
    evicted: List[Booking]
    working_set: List[Booking]
    availability: AvailabilityResult

    @property
    def evicted_ids(self) -> List[EntityId]:
        return [booking.id for booking in self.evicted]

    def bookings_to_persist(self, admitted: Booking) -> List[Booking]:
        """Полный набор бронирований для записи после допуска."""
        return [*self.working_set, admitted]


class BookingAdmissionService:
    """Доменный сервис допуска новых бронирований."""

    def __init__(self, calculator: AvailabilityCalculator):
        self.calculator = calculator

    def find_evictable(
        self, candidate: BookingDetails, bookings: Iterable[Booking]
    ) -> List[Booking]:
        """Предварительные бронирования, которые вытесняет кандидат."""
        if not candidate.is_confirmed:
            return []
        return [booking for booking in bookings if booking.can_be_evicted_by(candidate)]

    def plan(
        self, candidate: BookingDetails, bookings: Iterable[Booking]
    ) -> AdmissionPlan:
        """
        Проверяет, можно ли допустить кандидата.

        Вытеснение предварительно: если мест не хватает даже без вытесняемых
        бронирований, выбрасывается InsufficientCapacity, а текущий набор
        бронирований остается нетронутым.
        """
        BookingPolicy.validate_details(candidate, self.calculator.total_rooms)

        current = list(bookings)
        evicted = self.find_evictable(candidate, current)
        evicted_ids = {booking.id for booking in evicted}
        working_set = [booking for booking in current if booking.id not in evicted_ids]

        availability = self.calculator.compute(
            candidate.start_date,
            candidate.end_date,
            candidate.number_of_rooms,
            working_set,
        )
        if not availability.available:
            raise InsufficientCapacity(
                requested_rooms=candidate.number_of_rooms,
                available_rooms=availability.available_rooms,
                evictions_attempted=bool(evicted),
            )

        return AdmissionPlan(
            candidate=candidate,
            evicted=evicted,
            working_set=working_set,
            availability=availability,
        )
