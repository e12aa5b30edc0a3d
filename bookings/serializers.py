"""
Serializers for booking management.

``BookingCreateSerializer`` is the booking validator: it checks required
fields, identifiers, the booking date and seat availability without
touching any state. Seats are only moved in ``create``/``update``.
"""
import logging
from collections.abc import Mapping

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework import serializers

from trains.models import Train, TrainDate, SeatAllocationError
from utils.exceptions import BusinessRuleViolation, InvalidFormat, MissingField, NotFound
from utils.fields import CalendarDateField
from utils.ids import is_valid_object_id
from .models import Booking

logger = logging.getLogger(__name__)

User = get_user_model()

REQUIRED_FIELDS_MESSAGE = 'User, train, seatsBooked, and bookingDate are required'
NOT_ENOUGH_SEATS_MESSAGE = 'Not enough available seats'
DATE_UNAVAILABLE_MESSAGE = 'Train is not available on the selected date'
BOOKING_DATE_ERRORS = {'invalid': 'Invalid booking date', 'datetime': 'Invalid booking date'}


def validate_not_past(value):
    if value < timezone.localdate():
        raise serializers.ValidationError("Booking date cannot be in the past")
    return value


def find_availability(train_id, booking_date):
    record = TrainDate.objects.filter(train_id=train_id, date=booking_date).first()
    if record is None:
        raise BusinessRuleViolation(DATE_UNAVAILABLE_MESSAGE)
    return record


def reserve_or_fail(record, num_seats):
    try:
        record.reserve(num_seats)
    except SeatAllocationError:
        raise BusinessRuleViolation(NOT_ENOUGH_SEATS_MESSAGE)


class BookingSerializer(serializers.ModelSerializer):
    """Serializer for viewing bookings."""
    _id = serializers.CharField(source='id', read_only=True)
    user = serializers.CharField(source='user_id', read_only=True)
    train = serializers.CharField(source='train_id', read_only=True)
    seatsBooked = serializers.IntegerField(source='seats_booked', read_only=True)
    bookingDate = serializers.DateField(source='booking_date', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Booking
        fields = ['_id', 'user', 'train', 'seatsBooked', 'bookingDate', 'createdAt', 'updatedAt']


class BookingCreateSerializer(serializers.Serializer):
    """Serializer for creating a booking."""
    REQUIRED = ('user', 'train', 'seatsBooked', 'bookingDate')

    user = serializers.CharField()
    train = serializers.CharField()
    seatsBooked = serializers.IntegerField(source='seats_booked', min_value=1)
    bookingDate = CalendarDateField(source='booking_date', error_messages=BOOKING_DATE_ERRORS,
                                    validators=[validate_not_past])

    def to_internal_value(self, data):
        if isinstance(data, Mapping) and any(data.get(field) in (None, '') for field in self.REQUIRED):
            raise MissingField(REQUIRED_FIELDS_MESSAGE)
        return super().to_internal_value(data)

    def validate_user(self, value):
        if not is_valid_object_id(value):
            raise InvalidFormat('Invalid ID format')
        try:
            return User.objects.get(pk=value)
        except User.DoesNotExist:
            raise NotFound('User not found')

    def validate_train(self, value):
        if not is_valid_object_id(value):
            raise InvalidFormat('Invalid ID format')
        try:
            return Train.objects.get(pk=value)
        except Train.DoesNotExist:
            raise NotFound('Train not found')

    def validate(self, attrs):
        """Validate seat availability (without locking - lock in create())."""
        record = find_availability(attrs['train'].pk, attrs['booking_date'])
        if not record.can_book(attrs['seats_booked']):
            raise BusinessRuleViolation(NOT_ENOUGH_SEATS_MESSAGE)
        attrs['availability'] = record
        return attrs

    def create(self, validated_data):
        """Reserve the seats and persist the booking in one transaction."""
        record = validated_data.pop('availability')

        with transaction.atomic():
            reserve_or_fail(record, validated_data['seats_booked'])
            booking = Booking.objects.create(**validated_data)

        logger.info("Booking %s created: %s seats on train %s for %s",
                    booking.pk, booking.seats_booked, booking.train_id, booking.booking_date)
        return booking


class BookingUpdateSerializer(serializers.Serializer):
    """Serializer for changing the seat count and/or date of a booking."""
    seatsBooked = serializers.IntegerField(source='seats_booked', min_value=1, required=False)
    bookingDate = CalendarDateField(source='booking_date', required=False, error_messages=BOOKING_DATE_ERRORS,
                                    validators=[validate_not_past])

    def update(self, instance, validated_data):
        """
        Move the booking's seats: release the old count from the old date,
        then reserve the new count on the new date. Any failure rolls both back.

        The booking row is re-read under a lock so a concurrent update or
        cancellation cannot release the same seats twice.
        """
        with transaction.atomic():
            booking = instance.lock()
            if booking is None:
                raise NotFound('Booking not found')

            seats = validated_data.get('seats_booked', booking.seats_booked)
            booking_date = validated_data.get('booking_date', booking.booking_date)
            if seats == booking.seats_booked and booking_date == booking.booking_date:
                return booking

            TrainDate.lock_dates(booking.train_id, [booking.booking_date, booking_date])
            booking.release_seats()
            reserve_or_fail(find_availability(booking.train_id, booking_date), seats)

            booking.seats_booked = seats
            booking.booking_date = booking_date
            booking.save(update_fields=['seats_booked', 'booking_date', 'updated_at'])

        logger.info("Booking %s updated: %s seats for %s", booking.pk, seats, booking_date)
        return booking
