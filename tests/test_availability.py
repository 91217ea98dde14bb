"""
Тесты подневного расчета доступности номеров.
"""

from datetime import date, datetime

import pytest
from room_booking.domain import AvailabilityCalculator
from shared_kernel import TOTAL_ROOMS, BookingStatus, BookingValidationError


@pytest.fixture
def calculator() -> AvailabilityCalculator:
    return AvailabilityCalculator()


class TestAvailabilityCalculator:
    """Тесты для AvailabilityCalculator."""

    def test_no_bookings_means_full_capacity(self, calculator):
        result = calculator.compute(
            datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 3, 11, 0), 5, []
        )

        assert result.available is True
        assert result.available_rooms == TOTAL_ROOMS
        assert result.requested_rooms == 5
        assert result.daily_availability == {
            "2024-01-01": TOTAL_ROOMS,
            "2024-01-02": TOTAL_ROOMS,
            "2024-01-03": TOTAL_ROOMS,
        }

    def test_non_overlapping_bookings_leave_full_capacity(
        self, calculator, make_booking
    ):
        bookings = [
            make_booking(datetime(2024, 2, 1, 14, 0), datetime(2024, 2, 3, 11, 0), 50),
            make_booking(datetime(2023, 12, 1, 14, 0), datetime(2023, 12, 5, 11, 0), 80),
        ]

        result = calculator.compute(
            datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 3, 11, 0), 1, bookings
        )

        assert result.available_rooms == TOTAL_ROOMS
        assert set(result.daily_availability.values()) == {TOTAL_ROOMS}

    def test_containing_booking_reduces_every_day(self, calculator, make_booking):
        booking = make_booking(
            datetime(2023, 12, 31, 9, 0), datetime(2024, 1, 5, 18, 0), 10
        )

        result = calculator.compute(
            datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 3, 11, 0), 1, [booking]
        )

        assert result.daily_availability == {
            "2024-01-01": TOTAL_ROOMS - 10,
            "2024-01-02": TOTAL_ROOMS - 10,
            "2024-01-03": TOTAL_ROOMS - 10,
        }
        assert result.available_rooms == TOTAL_ROOMS - 10

    def test_partial_overlap_counts_only_boundary_day(self, calculator, make_booking):
        booking = make_booking(
            datetime(2023, 12, 30, 10, 0), datetime(2024, 1, 1, 11, 0), 20
        )

        result = calculator.compute(
            datetime(2024, 1, 1, 9, 0), datetime(2024, 1, 3, 11, 0), 1, [booking]
        )

        assert result.daily_availability == {
            "2024-01-01": 113,
            "2024-01-02": TOTAL_ROOMS,
            "2024-01-03": TOTAL_ROOMS,
        }
        assert "2023-12-30" not in result.daily_availability
        assert result.available_rooms == 113

    def test_booking_ending_at_start_does_not_overlap(self, calculator, make_booking):
        booking = make_booking(
            datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 3, 11, 0), 100
        )

        result = calculator.compute(
            datetime(2024, 1, 3, 11, 0), datetime(2024, 1, 5, 11, 0), 50, [booking]
        )

        assert result.available is True
        assert result.daily_availability["2024-01-03"] == TOTAL_ROOMS

    def test_booking_starting_at_end_does_not_overlap(self, calculator, make_booking):
        booking = make_booking(
            datetime(2024, 1, 3, 11, 0), datetime(2024, 1, 5, 11, 0), 100
        )

        result = calculator.compute(
            datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 3, 11, 0), 50, [booking]
        )

        assert result.available_rooms == TOTAL_ROOMS

    def test_minimum_day_is_binding(self, calculator, make_booking):
        bookings = [
            make_booking(
                datetime(2024, 1, 1, 0, 0),
                datetime(2024, 1, 3, 0, 0),
                100,
                BookingStatus.CONFIRMED,
            ),
        ]

        result = calculator.compute(
            datetime(2024, 1, 2, 0, 0), datetime(2024, 1, 4, 0, 0), 40, bookings
        )

        assert result.available is False
        assert result.available_rooms == 33
        assert result.daily_availability == {
            "2024-01-02": 33,
            "2024-01-03": 33,
            "2024-01-04": TOTAL_ROOMS,
        }

    def test_bookings_on_same_day_are_summed(self, calculator, make_booking):
        bookings = [
            make_booking(datetime(2024, 1, 1, 8, 0), datetime(2024, 1, 1, 12, 0), 30),
            make_booking(datetime(2024, 1, 1, 15, 0), datetime(2024, 1, 1, 20, 0), 40),
        ]

        result = calculator.compute(
            datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 1, 23, 0), 63, bookings
        )

        assert result.daily_availability == {"2024-01-01": 63}
        assert result.available is True

    def test_shift_by_one_day_preserves_shared_days(self, calculator, make_booking):
        bookings = [
            make_booking(datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 10, 0, 0), 30),
            make_booking(datetime(2024, 1, 5, 8, 0), datetime(2024, 1, 5, 20, 0), 3),
        ]

        original = calculator.compute(
            datetime(2024, 1, 3, 12, 0), datetime(2024, 1, 6, 12, 0), 1, bookings
        )
        shifted = calculator.compute(
            datetime(2024, 1, 4, 12, 0), datetime(2024, 1, 7, 12, 0), 1, bookings
        )

        shared_days = ["2024-01-04", "2024-01-05", "2024-01-06"]
        for day in shared_days:
            assert original.daily_availability[day] == shifted.daily_availability[day]
        assert original.daily_availability["2024-01-05"] == 100

    def test_daily_availability_is_in_ascending_order(self, calculator):
        result = calculator.compute(
            datetime(2024, 1, 30, 14, 0), datetime(2024, 2, 2, 11, 0), 1, []
        )

        keys = list(result.daily_availability)
        assert keys == sorted(keys)
        assert keys[0] == "2024-01-30" and keys[-1] == "2024-02-02"

    def test_result_echoes_interval_and_times(self, calculator):
        start, end = datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 2, 11, 0)

        result = calculator.compute(start, end, 2, [])

        assert result.start_date == start
        assert result.end_date == end
        assert result.check_in_time == "14:00"
        assert result.check_out_time == "11:00"

    def test_compute_excluding_ignores_listed_bookings(self, calculator, make_booking):
        own = make_booking(datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 3, 11, 0), 100)
        other = make_booking(
            datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 3, 11, 0), 20
        )

        result = calculator.compute_excluding(
            datetime(2024, 1, 1, 14, 0),
            datetime(2024, 1, 3, 11, 0),
            110,
            [own, other],
            [own.id],
        )

        assert result.available is True
        assert result.available_rooms == 113

    def test_custom_inventory_size(self, make_booking):
        calculator = AvailabilityCalculator(total_rooms=20)
        booking = make_booking(datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 2, 11, 0), 15)

        result = calculator.compute(
            datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 2, 11, 0), 6, [booking]
        )

        assert result.available_rooms == 5
        assert result.available is False

    def test_end_must_be_after_start(self, calculator):
        with pytest.raises(BookingValidationError):
            calculator.compute(
                datetime(2024, 1, 2, 11, 0), datetime(2024, 1, 2, 11, 0), 1, []
            )

    def test_requested_rooms_must_be_positive(self, calculator):
        with pytest.raises(BookingValidationError):
            calculator.compute(
                datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 2, 11, 0), 0, []
            )

    def test_inventory_must_be_positive(self):
        with pytest.raises(ValueError):
            AvailabilityCalculator(total_rooms=0)


class TestDailySummary:
    """Тесты сводки загрузки на день."""

    def test_summary_for_booked_day(self, calculator, make_booking):
        booking = make_booking(datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 3, 11, 0), 10)

        summary = calculator.summarize_day(date(2024, 1, 2), [booking])

        assert summary.day == date(2024, 1, 2)
        assert summary.total_rooms == TOTAL_ROOMS
        assert summary.booked_rooms == 10
        assert summary.available_rooms == 123
        assert summary.availability_percentage == pytest.approx(123 / 133 * 100)

    def test_summary_for_free_day(self, calculator, make_booking):
        booking = make_booking(datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 3, 11, 0), 10)

        summary = calculator.summarize_day(date(2024, 1, 4), [booking])

        assert summary.booked_rooms == 0
        assert summary.available_rooms == TOTAL_ROOMS
        assert summary.availability_percentage == pytest.approx(100.0)
