"""Booking model."""
import logging

from django.conf import settings
from django.db import models, transaction
from django.core.validators import MinValueValidator

from trains.models import Train, TrainDate
from utils.ids import generate_object_id

logger = logging.getLogger(__name__)


class Booking(models.Model):
    id = models.CharField(primary_key=True, max_length=24, default=generate_object_id, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='bookings')
    train = models.ForeignKey(Train, on_delete=models.PROTECT, related_name='bookings')
    seats_booked = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    booking_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['train', 'booking_date'], name='bookings_train_date_idx'),
        ]

    def __str__(self):
        return f"{self.seats_booked} seat(s) on {self.train_id} for {self.booking_date}"

    def lock(self):
        """Re-read this booking under a row lock; None if it has been deleted."""
        return Booking.objects.select_for_update().filter(pk=self.pk).first()

    def cancel(self):
        """
        Release the seats and delete the booking.

        Returns False if another request deleted it first, in which case
        nothing is released.
        """
        with transaction.atomic():
            current = self.lock()
            if current is None:
                return False
            current.release_seats()
            current.delete()
        return True

    def availability(self):
        """The train's availability record for this booking's date, if any."""
        return TrainDate.objects.filter(train_id=self.train_id, date=self.booking_date).first()

    def release_seats(self):
        record = self.availability()
        if record is None:
            logger.warning("No availability record for booking %s on %s; nothing to release",
                           self.pk, self.booking_date)
            return
        record.release(self.seats_booked)
