"""
Route, train and per-date seat availability models.
"""
import logging

from django.db import models, transaction
from django.core.validators import MinValueValidator
from django.utils import timezone

from utils.ids import generate_object_id

logger = logging.getLogger(__name__)


class SeatAllocationError(Exception):
    """Raised when a reservation cannot be applied to an availability record."""


class Route(models.Model):
    """A pair of stations a train runs between."""
    id = models.CharField(primary_key=True, max_length=24, default=generate_object_id, editable=False)
    start_station = models.CharField(max_length=100)
    end_station = models.CharField(max_length=100)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'routes'
        indexes = [
            models.Index(fields=['start_station', 'end_station'], name='routes_stations_idx'),
        ]

    def __str__(self):
        return f"{self.start_station} -> {self.end_station}"


class Train(models.Model):
    """
    Train running on a route. ``available_seats`` is the aggregate capacity
    and the default capacity of each new availability record.
    """
    id = models.CharField(primary_key=True, max_length=24, default=generate_object_id, editable=False)
    name = models.CharField(max_length=255)
    route = models.ForeignKey(Route, on_delete=models.PROTECT, related_name='trains')
    departure_time = models.DateTimeField()
    arrival_time = models.DateTimeField()
    available_seats = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'trains'

    def __str__(self):
        return f"{self.name} ({self.route})"


class TrainDate(models.Model):
    """
    Seat availability of a train on one calendar date.
    Uses optimistic locking with version field for race condition handling.
    """
    id = models.CharField(primary_key=True, max_length=24, default=generate_object_id, editable=False)
    train = models.ForeignKey(Train, on_delete=models.CASCADE, related_name='available_dates')
    date = models.DateField()
    available_seats = models.PositiveIntegerField()
    seats_booked = models.PositiveIntegerField(default=0)
    version = models.PositiveIntegerField(default=0)  # For optimistic locking
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'train_dates'
        ordering = ['date']
        constraints = [
            models.UniqueConstraint(fields=['train', 'date'], name='uniq_train_date'),
        ]

    def __str__(self):
        return f"{self.train.name} on {self.date}"

    @property
    def remaining_seats(self):
        return self.available_seats - self.seats_booked

    def can_book(self, num_seats):
        """Check if the requested number of seats can be booked."""
        return num_seats <= self.remaining_seats

    @classmethod
    def lock_dates(cls, train_id, dates):
        """
        Lock the train's records for ``dates`` in primary key order.

        Callers touching more than one date take their locks here first so
        two transactions never wait on each other's records.
        """
        return list(
            cls.objects.select_for_update()
            .filter(train_id=train_id, date__in=set(dates))
            .order_by('pk')
        )

    def reserve(self, num_seats):
        """
        Book ``num_seats`` on this date.

        The row is locked and re-checked, then updated only if its version
        is unchanged. Raises SeatAllocationError if the seats are gone.
        """
        with transaction.atomic():
            record = TrainDate.objects.select_for_update().get(pk=self.pk)
            if not record.can_book(num_seats):
                logger.warning(
                    "Reservation of %s seats on %s rejected: %s remaining",
                    num_seats, record.pk, record.remaining_seats
                )
                raise SeatAllocationError('Not enough available seats')

            updated = TrainDate.objects.filter(
                pk=record.pk,
                version=record.version
            ).update(
                seats_booked=record.seats_booked + num_seats,
                version=record.version + 1,
                updated_at=timezone.now()
            )
            if updated == 0:
                logger.warning("Concurrent update on %s, reservation rejected", record.pk)
                raise SeatAllocationError('Not enough available seats')

        self.refresh_from_db()
        logger.info("Reserved %s seats on %s (%s/%s booked)",
                    num_seats, self.pk, self.seats_booked, self.available_seats)

    def release(self, num_seats):
        """Give ``num_seats`` back to this date; never drops below zero."""
        with transaction.atomic():
            record = TrainDate.objects.select_for_update().get(pk=self.pk)
            TrainDate.objects.filter(pk=record.pk).update(
                seats_booked=max(record.seats_booked - num_seats, 0),
                version=record.version + 1,
                updated_at=timezone.now()
            )

        self.refresh_from_db()
        logger.info("Released %s seats on %s (%s/%s booked)",
                    num_seats, self.pk, self.seats_booked, self.available_seats)
