"""
Tests for bookings app.
Tests cover: Booking model, Booking validation, Booking API, Seat accounting across create/update/delete.
"""
from datetime import datetime, time, timedelta
from unittest.mock import patch

from django.test import TestCase, TransactionTestCase
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient, APITestCase
from rest_framework import status

from bookings.models import Booking
from bookings.views import BookingDetailView
from bookings.serializers import BookingCreateSerializer, BookingUpdateSerializer
from trains.models import Route, Train, TrainDate
from utils.exceptions import BusinessRuleViolation, NotFound

User = get_user_model()


class BookingFixtureMixin:
    """A user and a 100-seat train with availability a week and eight days out."""

    def create_fixtures(self):
        self.today = timezone.localdate()
        self.travel_date = self.today + timedelta(days=7)
        self.other_date = self.today + timedelta(days=8)

        self.user = User.objects.create_user(
            email='testuser@example.com',
            password='Password123',
            name='Test User'
        )
        self.route = Route.objects.create(start_station='Delhi', end_station='Mumbai')
        departure = timezone.make_aware(datetime.combine(self.travel_date, time(16, 55)))
        self.train = Train.objects.create(
            name='Mumbai Rajdhani',
            route=self.route,
            departure_time=departure,
            arrival_time=departure + timedelta(hours=15),
            available_seats=100
        )
        self.record = TrainDate.objects.create(train=self.train, date=self.travel_date, available_seats=100)
        self.other_record = TrainDate.objects.create(train=self.train, date=self.other_date, available_seats=100)

    def booking_data(self, **overrides):
        data = {
            'user': self.user.pk,
            'train': self.train.pk,
            'seatsBooked': 2,
            'bookingDate': str(self.travel_date),
        }
        data.update(overrides)
        return data


# =============================================================================
# UNIT TESTS - Models
# =============================================================================

class BookingModelTests(BookingFixtureMixin, TestCase):
    """Test Booking model helpers."""

    def setUp(self):
        self.create_fixtures()

    def test_create_booking(self):
        booking = Booking.objects.create(
            user=self.user, train=self.train, seats_booked=2, booking_date=self.travel_date
        )

        self.assertEqual(len(booking.pk), 24)
        self.assertEqual(booking.seats_booked, 2)
        self.assertIsNotNone(booking.created_at)

    def test_availability_lookup(self):
        booking = Booking(user=self.user, train=self.train, seats_booked=1, booking_date=self.travel_date)
        self.assertEqual(booking.availability(), self.record)

        booking.booking_date = self.today + timedelta(days=30)
        self.assertIsNone(booking.availability())

    def test_release_seats(self):
        self.record.reserve(5)
        booking = Booking.objects.create(
            user=self.user, train=self.train, seats_booked=5, booking_date=self.travel_date
        )

        booking.release_seats()

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 0)

    def test_release_seats_without_record(self):
        booking = Booking.objects.create(
            user=self.user, train=self.train, seats_booked=5, booking_date=self.today + timedelta(days=30)
        )

        booking.release_seats()  # nothing to release, no error

    def test_bookings_removed_with_user(self):
        Booking.objects.create(user=self.user, train=self.train, seats_booked=1, booking_date=self.travel_date)

        self.user.delete()

        self.assertFalse(Booking.objects.exists())


# =============================================================================
# UNIT TESTS - Validation
# =============================================================================

class BookingValidationTests(BookingFixtureMixin, TestCase):
    """The create serializer validates without moving seats."""

    def setUp(self):
        self.create_fixtures()

    def test_valid_booking(self):
        serializer = BookingCreateSerializer(data=self.booking_data())

        self.assertTrue(serializer.is_valid())
        self.assertEqual(serializer.validated_data['train'], self.train)
        self.assertEqual(serializer.validated_data['availability'], self.record)

        # Validation alone does not reserve anything
        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 0)

    def test_seats_must_be_positive(self):
        serializer = BookingCreateSerializer(data=self.booking_data(seatsBooked=0))

        self.assertFalse(serializer.is_valid())
        self.assertIn('seatsBooked', serializer.errors)

    def test_insufficient_seats(self):
        serializer = BookingCreateSerializer(data=self.booking_data(seatsBooked=101))

        with self.assertRaises(BusinessRuleViolation):
            serializer.is_valid()


# =============================================================================
# INTEGRATION TESTS - Booking API
# =============================================================================

class BookingCreateAPITests(BookingFixtureMixin, APITestCase):
    """POST /bookings."""

    def setUp(self):
        self.create_fixtures()

    def post(self, data):
        return self.client.post('/bookings', data, format='json')

    def test_create_booking(self):
        response = self.post(self.booking_data())

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('_id', response.data)
        self.assertEqual(response.data['user'], self.user.pk)
        self.assertEqual(response.data['train'], self.train.pk)
        self.assertEqual(response.data['seatsBooked'], 2)
        self.assertEqual(response.data['bookingDate'], str(self.travel_date))

    def test_create_booking_reserves_seats(self):
        self.post(self.booking_data(seatsBooked=2))

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 2)
        self.assertEqual(self.record.remaining_seats, 98)
        # Other dates are untouched
        self.other_record.refresh_from_db()
        self.assertEqual(self.other_record.seats_booked, 0)

    def test_over_capacity_then_valid_booking(self):
        response = self.post(self.booking_data(seatsBooked=101))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Not enough available seats')
        self.assertFalse(Booking.objects.exists())

        response = self.post(self.booking_data(seatsBooked=2))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 2)

    def test_book_remaining_seats_exactly(self):
        self.record.reserve(98)

        self.assertEqual(self.post(self.booking_data(seatsBooked=2)).status_code, status.HTTP_201_CREATED)
        response = self.post(self.booking_data(seatsBooked=1))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Not enough available seats')

    def test_accepts_iso_datetime_booking_date(self):
        response = self.post(self.booking_data(bookingDate=f'{self.travel_date}T00:00:00.000Z'))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['bookingDate'], str(self.travel_date))

    def test_missing_fields(self):
        response = self.post({'user': self.user.pk, 'train': self.train.pk})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User, train, seatsBooked, and bookingDate are required')

    def test_empty_field_counts_as_missing(self):
        response = self.post(self.booking_data(bookingDate=''))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User, train, seatsBooked, and bookingDate are required')

    def test_invalid_booking_date(self):
        response = self.post(self.booking_data(bookingDate='invalid-date'))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0], {'msg': 'Invalid booking date', 'path': 'bookingDate'})

    def test_past_booking_date(self):
        response = self.post(self.booking_data(bookingDate=str(self.today - timedelta(days=1))))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'Booking date cannot be in the past')

    def test_date_without_availability(self):
        response = self.post(self.booking_data(bookingDate=str(self.today + timedelta(days=30))))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Train is not available on the selected date')

    def test_malformed_user_id(self):
        response = self.post(self.booking_data(user='invalid-user-id'))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid ID format')

    def test_unknown_train(self):
        response = self.post(self.booking_data(train='000000000000000000000000'))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Train not found')

    def test_unknown_user(self):
        response = self.post(self.booking_data(user='000000000000000000000000'))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'User not found')


class BookingDetailAPITests(BookingFixtureMixin, APITestCase):
    """GET/PUT/DELETE /bookings/<id>."""

    def setUp(self):
        self.create_fixtures()
        response = self.client.post('/bookings', self.booking_data(seatsBooked=2), format='json')
        self.booking_id = response.data['_id']

    def test_list_bookings(self):
        response = self.client.get('/bookings', {'user': self.user.pk})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['_id'], self.booking_id)

    def test_get_booking(self):
        response = self.client.get(f'/bookings/{self.booking_id}')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['_id'], self.booking_id)
        self.assertEqual(response.data['seatsBooked'], 2)

    def test_get_booking_invalid_id(self):
        response = self.client.get('/bookings/invalid-booking-id')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Booking not found')

    def test_get_booking_unknown_id(self):
        response = self.client.get('/bookings/000000000000000000000000')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Booking not found')

    def test_update_seats(self):
        response = self.client.put(f'/bookings/{self.booking_id}', {'seatsBooked': 3}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['seatsBooked'], 3)

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 3)
        self.assertEqual(self.client.get(f'/bookings/{self.booking_id}').data['seatsBooked'], 3)

    def test_update_moves_seats_to_new_date(self):
        response = self.client.put(f'/bookings/{self.booking_id}', {
            'bookingDate': str(self.other_date)
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.record.refresh_from_db()
        self.other_record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 0)
        self.assertEqual(self.other_record.seats_booked, 2)

    def test_update_over_capacity_rolls_back(self):
        response = self.client.put(f'/bookings/{self.booking_id}', {'seatsBooked': 101}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Not enough available seats')

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 2)
        self.assertEqual(Booking.objects.get(pk=self.booking_id).seats_booked, 2)

    def test_update_to_date_without_availability(self):
        response = self.client.put(f'/bookings/{self.booking_id}', {
            'bookingDate': str(self.today + timedelta(days=30))
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Train is not available on the selected date')
        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 2)

    def test_update_booking_invalid_id(self):
        response = self.client.put('/bookings/invalid-booking-id', {'seatsBooked': 3}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Booking not found')

    def test_delete_booking_releases_seats(self):
        response = self.client.delete(f'/bookings/{self.booking_id}')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Booking successfully deleted')

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 0)
        self.assertEqual(self.client.get(f'/bookings/{self.booking_id}').status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_booking_invalid_id(self):
        response = self.client.delete('/bookings/invalid-booking-id')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Booking not found')

    def test_deleting_user_releases_their_seats(self):
        self.client.post('/auth/login', {'email': self.user.email, 'password': 'Password123'}, format='json')

        response = self.client.delete(f'/users/{self.user.pk}')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 0)
        self.assertFalse(Booking.objects.filter(pk=self.booking_id).exists())

    def test_train_with_bookings_cannot_be_deleted(self):
        User.objects.create_user(email='admin@example.com', password='Admin1234', name='Admin', is_admin=True)
        self.client.post('/auth/login', {'email': 'admin@example.com', 'password': 'Admin1234'}, format='json')

        response = self.client.delete(f'/trains/{self.train.pk}')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Train has existing bookings')


# =============================================================================
# CONCURRENCY TESTS - Seat accounting
# =============================================================================

class BookingConcurrencyTests(BookingFixtureMixin, TransactionTestCase):
    """
    Bookings validated against the same snapshot must not oversell.
    Uses TransactionTestCase so each reservation commits on its own.
    """

    def setUp(self):
        self.create_fixtures()
        self.record.reserve(97)  # 3 seats left

    def test_second_of_two_validated_bookings_is_rejected(self):
        """Both pass validation; only the first reservation can be applied."""
        first = BookingCreateSerializer(data=self.booking_data(seatsBooked=2))
        second = BookingCreateSerializer(data=self.booking_data(seatsBooked=2))
        self.assertTrue(first.is_valid())
        self.assertTrue(second.is_valid())

        first.save()
        with self.assertRaises(BusinessRuleViolation):
            second.save()

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 99)
        self.assertEqual(Booking.objects.count(), 1)

    def test_sequential_bookings_work_correctly(self):
        for seats in (1, 2):
            serializer = BookingCreateSerializer(data=self.booking_data(seatsBooked=seats))
            self.assertTrue(serializer.is_valid())
            serializer.save()

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 100)
        self.assertEqual(self.record.remaining_seats, 0)


class StaleBookingTests(BookingFixtureMixin, TransactionTestCase):
    """
    Two requests that loaded the same booking must not both move its seats.
    A 10-seat date holds booking A (5 seats) and booking B (5 seats).
    """
    client_class = APIClient

    def setUp(self):
        self.create_fixtures()
        TrainDate.objects.filter(pk=self.record.pk).update(available_seats=10)
        self.client.post('/bookings', self.booking_data(seatsBooked=5), format='json')
        response = self.client.post('/bookings', self.booking_data(seatsBooked=5), format='json')
        self.booking_id = response.data['_id']

    def test_second_cancel_of_same_booking_releases_nothing(self):
        first = Booking.objects.get(pk=self.booking_id)
        second = Booking.objects.get(pk=self.booking_id)

        self.assertTrue(first.cancel())
        self.assertFalse(second.cancel())

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 5)

        # Only the 5 seats released by the first cancel can be booked again
        response = self.client.post('/bookings', self.booking_data(seatsBooked=10), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Not enough available seats')

    def test_delete_of_already_cancelled_booking_is_404(self):
        stale = Booking.objects.get(pk=self.booking_id)
        stale.cancel()

        with patch.object(BookingDetailView, 'get_object', return_value=stale):
            response = self.client.delete(f'/bookings/{self.booking_id}')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Booking not found')
        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 5)

    def test_update_uses_current_seat_count(self):
        stale = Booking.objects.get(pk=self.booking_id)
        response = self.client.put(f'/bookings/{self.booking_id}', {'seatsBooked': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        # The stale copy still says 5 seats; only the stored 2 may be released
        serializer = BookingUpdateSerializer(stale, data={'seatsBooked': 3}, partial=True)
        self.assertTrue(serializer.is_valid())
        serializer.save()

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 8)
        self.assertEqual(Booking.objects.get(pk=self.booking_id).seats_booked, 3)

    def test_update_of_cancelled_booking_is_not_found(self):
        stale = Booking.objects.get(pk=self.booking_id)
        Booking.objects.get(pk=self.booking_id).cancel()

        serializer = BookingUpdateSerializer(stale, data={'seatsBooked': 3}, partial=True)
        self.assertTrue(serializer.is_valid())
        with self.assertRaises(NotFound):
            serializer.save()

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 5)


class LoggedInBookingTests(BookingFixtureMixin, APITestCase):
    """Bookings stay public for clients that carry a session and enforce CSRF."""

    def setUp(self):
        self.create_fixtures()
        self.client = APIClient(enforce_csrf_checks=True)
        self.client.post('/auth/login', {'email': self.user.email, 'password': 'Password123'}, format='json')

    def test_create_booking_with_session(self):
        response = self.client.post('/bookings', self.booking_data(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_update_and_delete_with_session(self):
        booking_id = self.client.post('/bookings', self.booking_data(), format='json').data['_id']

        response = self.client.put(f'/bookings/{booking_id}', {'seatsBooked': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.delete(f'/bookings/{booking_id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 0)


class BookingAdminTests(BookingFixtureMixin, TestCase):
    """Bookings are not created from the Django admin, since that would skip seat reservation."""

    def setUp(self):
        self.create_fixtures()
        self.admin = User.objects.create_superuser(email='admin@example.com', password='Admin1234', name='Admin')
        self.client.force_login(self.admin)

    def test_add_page_is_forbidden(self):
        response = self.client.get('/admin/bookings/booking/add/')
        self.assertEqual(response.status_code, 403)

    def test_change_list_still_available(self):
        Booking.objects.create(user=self.user, train=self.train, seats_booked=1, booking_date=self.travel_date)

        response = self.client.get('/admin/bookings/booking/')
        self.assertEqual(response.status_code, 200)
