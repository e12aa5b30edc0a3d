"""
Tests for trains app.
Tests cover: Model constraints, Seat accounting on availability records, Route/Train API, Search API, Admin-only access.
"""
from datetime import datetime, time, timedelta
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from trains.models import Route, Train, TrainDate, SeatAllocationError

User = get_user_model()


def make_train(route, name='Express Train', seats=100, days=(7,)):
    """Train departing tomorrow with availability records `days` days from today."""
    today = timezone.localdate()
    departure = timezone.make_aware(datetime.combine(today + timedelta(days=1), time(10, 0)))
    train = Train.objects.create(
        name=name,
        route=route,
        departure_time=departure,
        arrival_time=departure + timedelta(hours=8),
        available_seats=seats
    )
    for offset in days:
        TrainDate.objects.create(train=train, date=today + timedelta(days=offset), available_seats=seats)
    return train


# =============================================================================
# UNIT TESTS - Models
# =============================================================================

class RouteModelTests(TestCase):
    """Test Route model constraints."""

    def test_create_and_save_route(self):
        route = Route.objects.create(start_station='Station A', end_station='Station B')

        self.assertEqual(len(route.pk), 24)
        self.assertEqual(route.start_station, 'Station A')
        self.assertEqual(route.end_station, 'Station B')

    def test_route_without_start_station_is_invalid(self):
        route = Route(end_station='Station B')

        with self.assertRaises(ValidationError) as ctx:
            route.full_clean()
        self.assertIn('start_station', ctx.exception.message_dict)

    def test_route_without_end_station_is_invalid(self):
        route = Route(start_station='Station A')

        with self.assertRaises(ValidationError) as ctx:
            route.full_clean()
        self.assertIn('end_station', ctx.exception.message_dict)

    def test_update_route(self):
        route = Route.objects.create(start_station='Station A', end_station='Station B')

        Route.objects.filter(pk=route.pk).update(end_station='Station C')

        route.refresh_from_db()
        self.assertEqual(route.end_station, 'Station C')

    def test_delete_route(self):
        route = Route.objects.create(start_station='Station A', end_station='Station B')

        route.delete()

        self.assertFalse(Route.objects.filter(start_station='Station A').exists())

    def test_route_string_representation(self):
        route = Route(start_station='Delhi', end_station='Mumbai')
        self.assertEqual(str(route), 'Delhi -> Mumbai')


class TrainDateModelTests(TestCase):
    """Test per-date seat accounting."""

    def setUp(self):
        self.route = Route.objects.create(start_station='Delhi', end_station='Mumbai')
        self.train = make_train(self.route, seats=10)
        self.record = self.train.available_dates.get()

    def test_one_record_per_train_and_date(self):
        with self.assertRaises(IntegrityError):
            TrainDate.objects.create(train=self.train, date=self.record.date, available_seats=5)

    def test_remaining_seats(self):
        self.record.seats_booked = 4
        self.assertEqual(self.record.remaining_seats, 6)

    def test_can_book(self):
        self.assertTrue(self.record.can_book(10))
        self.assertFalse(self.record.can_book(11))

    def test_reserve_increments_seats_and_version(self):
        self.record.reserve(3)

        self.assertEqual(self.record.seats_booked, 3)
        self.assertEqual(self.record.version, 1)
        self.assertEqual(TrainDate.objects.get(pk=self.record.pk).seats_booked, 3)

    def test_reserve_beyond_capacity_fails(self):
        self.record.reserve(8)

        with self.assertRaises(SeatAllocationError):
            self.record.reserve(3)

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 8)

    def test_reserve_rechecks_stored_state(self):
        """A stale in-memory copy cannot overbook: the stored row is re-checked."""
        first = TrainDate.objects.get(pk=self.record.pk)
        second = TrainDate.objects.get(pk=self.record.pk)

        first.reserve(6)
        self.assertTrue(second.can_book(6))  # stale view still says yes

        with self.assertRaises(SeatAllocationError):
            second.reserve(6)

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 6)

    def test_release_returns_seats(self):
        self.record.reserve(5)
        self.record.release(2)

        self.assertEqual(self.record.seats_booked, 3)
        self.assertEqual(self.record.version, 2)

    def test_release_never_goes_negative(self):
        self.record.reserve(2)
        self.record.release(5)

        self.assertEqual(self.record.seats_booked, 0)

    def test_lock_dates_returns_records_in_key_order(self):
        """Whichever order the dates are asked for, locks are taken in primary key order."""
        later = TrainDate.objects.create(
            train=self.train, date=self.record.date + timedelta(days=1), available_seats=10
        )
        expected = sorted([self.record.pk, later.pk])

        for dates in ([self.record.date, later.date], [later.date, self.record.date]):
            locked = TrainDate.lock_dates(self.train.pk, dates)
            self.assertEqual([r.pk for r in locked], expected)

    def test_lock_dates_ignores_unknown_and_repeated_dates(self):
        locked = TrainDate.lock_dates(self.train.pk, [self.record.date, self.record.date,
                                                      self.record.date + timedelta(days=30)])
        self.assertEqual(locked, [self.record])

    def test_stale_version_update_is_rejected(self):
        """Version-guarded updates affect no rows once another writer has moved on."""
        initial_version = self.record.version

        updated = TrainDate.objects.filter(
            pk=self.record.pk, version=initial_version
        ).update(seats_booked=2, version=initial_version + 1)
        self.assertEqual(updated, 1)

        stale_update = TrainDate.objects.filter(
            pk=self.record.pk, version=initial_version
        ).update(seats_booked=4, version=initial_version + 1)
        self.assertEqual(stale_update, 0)

        self.record.refresh_from_db()
        self.assertEqual(self.record.seats_booked, 2)


# =============================================================================
# INTEGRATION TESTS - Route API
# =============================================================================

class RouteAPITests(APITestCase):
    """Route CRUD; reads are public, writes need an admin session."""

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@example.com', password='Admin1234', name='Admin', is_admin=True
        )
        self.user = User.objects.create_user(email='user@example.com', password='User12345', name='User')
        self.route = Route.objects.create(start_station='Delhi', end_station='Mumbai')

    def login(self, email, password):
        self.client.post('/auth/login', {'email': email, 'password': password}, format='json')

    def test_list_routes_public(self):
        response = self.client.get('/routes')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['startStation'], 'Delhi')

    def test_create_route_as_admin(self):
        self.login('admin@example.com', 'Admin1234')

        response = self.client.post('/routes', {'startStation': 'Chennai', 'endStation': 'Bangalore'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('_id', response.data)
        self.assertTrue(Route.objects.filter(start_station='Chennai').exists())

    def test_create_route_as_regular_user_forbidden(self):
        self.login('user@example.com', 'User12345')

        response = self.client.post('/routes', {'startStation': 'Chennai', 'endStation': 'Bangalore'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Admin access required')

    def test_create_route_anonymous_forbidden(self):
        response = self.client.post('/routes', {'startStation': 'Chennai', 'endStation': 'Bangalore'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_route_missing_start_station(self):
        self.login('admin@example.com', 'Admin1234')

        response = self.client.post('/routes', {'endStation': 'Bangalore'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0], {'msg': 'startStation is required', 'path': 'startStation'})

    def test_create_route_same_stations(self):
        self.login('admin@example.com', 'Admin1234')

        response = self.client.post('/routes', {'startStation': 'Pune', 'endStation': 'pune'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'Start and end stations must differ')

    def test_get_route_not_found(self):
        response = self.client.get('/routes/invalid-route-id')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Route not found')

    def test_update_route(self):
        self.login('admin@example.com', 'Admin1234')

        response = self.client.put(f'/routes/{self.route.pk}', {'endStation': 'Pune'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['endStation'], 'Pune')

    def test_delete_route_in_use_rejected(self):
        make_train(self.route)
        self.login('admin@example.com', 'Admin1234')

        response = self.client.delete(f'/routes/{self.route.pk}')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Route is assigned to one or more trains')

    def test_delete_route(self):
        self.login('admin@example.com', 'Admin1234')

        response = self.client.delete(f'/routes/{self.route.pk}')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Route successfully deleted')
        self.assertFalse(Route.objects.exists())


# =============================================================================
# INTEGRATION TESTS - Train API
# =============================================================================

class TrainAPITests(APITestCase):
    """Train CRUD with availability records."""

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@example.com', password='Admin1234', name='Admin', is_admin=True
        )
        self.client.post('/auth/login', {'email': 'admin@example.com', 'password': 'Admin1234'}, format='json')
        self.route = Route.objects.create(start_station='Delhi', end_station='Mumbai')
        self.today = timezone.localdate()

    def payload(self, **overrides):
        data = {
            'name': 'Mumbai Rajdhani',
            'route': self.route.pk,
            'departureTime': '2030-01-15T16:55:00Z',
            'arrivalTime': '2030-01-16T08:35:00Z',
            'availableSeats': 500,
            'availableDates': [
                {'date': str(self.today + timedelta(days=7))},
                {'date': str(self.today + timedelta(days=8)), 'availableSeats': 300},
            ],
        }
        data.update(overrides)
        return data

    def test_create_train_with_dates(self):
        response = self.client.post('/trains', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['route'], self.route.pk)
        self.assertEqual(response.data['routeDetails'], {'startStation': 'Delhi', 'endStation': 'Mumbai'})

        dates = response.data['availableDates']
        self.assertEqual(len(dates), 2)
        # Capacity defaults to the train's
        self.assertEqual(dates[0]['availableSeats'], 500)
        self.assertEqual(dates[1]['availableSeats'], 300)
        self.assertEqual(dates[0]['seatsBooked'], 0)

    def test_create_train_accepts_datetime_dates(self):
        date_value = self.today + timedelta(days=9)
        response = self.client.post('/trains', self.payload(
            availableDates=[{'date': f'{date_value}T00:00:00.000Z'}]
        ), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['availableDates'][0]['date'], str(date_value))

    def test_create_train_unknown_route(self):
        response = self.client.post('/trains', self.payload(route='000000000000000000000000'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0], {'msg': 'Route not found', 'path': 'route'})

    def test_create_train_arrival_before_departure(self):
        response = self.client.post('/trains', self.payload(arrivalTime='2030-01-14T08:00:00Z'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['path'], 'arrivalTime')

    def test_create_train_duplicate_dates(self):
        day = str(self.today + timedelta(days=7))
        response = self.client.post('/trains', self.payload(
            availableDates=[{'date': day}, {'date': day}]
        ), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['path'], 'availableDates')
        self.assertFalse(Train.objects.exists())

    def test_update_train_upserts_dates(self):
        train = make_train(self.route, seats=50, days=(7,))
        new_day = self.today + timedelta(days=10)

        response = self.client.put(f'/trains/{train.pk}', {
            'availableDates': [
                {'date': str(self.today + timedelta(days=7)), 'availableSeats': 80},
                {'date': str(new_day)},
            ]
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [(d['date'], d['availableSeats']) for d in response.data['availableDates']],
            [(str(self.today + timedelta(days=7)), 80), (str(new_day), 50)]
        )

    def test_update_capacity_below_booked_rejected(self):
        train = make_train(self.route, seats=50)
        record = train.available_dates.get()
        record.reserve(20)

        response = self.client.put(f'/trains/{train.pk}', {
            'availableDates': [{'date': str(record.date), 'availableSeats': 10}]
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        record.refresh_from_db()
        self.assertEqual(record.available_seats, 50)

    def test_get_train_not_found(self):
        response = self.client.get('/trains/000000000000000000000000')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Train not found')

    def test_delete_train(self):
        train = make_train(self.route)

        response = self.client.delete(f'/trains/{train.pk}')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Train successfully deleted')
        self.assertFalse(TrainDate.objects.exists())


# =============================================================================
# INTEGRATION TESTS - Search API
# =============================================================================

class TrainSearchAPITests(APITestCase):
    """Test train search endpoint."""

    def setUp(self):
        self.today = timezone.localdate()
        delhi_mumbai = Route.objects.create(start_station='Delhi', end_station='Mumbai')
        delhi_kolkata = Route.objects.create(start_station='Delhi', end_station='Kolkata')
        self.rajdhani = make_train(delhi_mumbai, name='Mumbai Rajdhani', days=(7, 8))
        self.duronto = make_train(delhi_mumbai, name='Mumbai Duronto', days=(8,))
        make_train(delhi_kolkata, name='Howrah Rajdhani', days=(7,))

    def test_search_by_stations(self):
        response = self.client.get('/trains/search', {'startStation': 'delhi', 'endStation': 'MUMBAI'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        names = {t['name'] for t in response.data['results']}
        self.assertEqual(names, {'Mumbai Rajdhani', 'Mumbai Duronto'})

    def test_search_by_date(self):
        response = self.client.get('/trains/search', {
            'startStation': 'Delhi',
            'endStation': 'Mumbai',
            'date': str(self.today + timedelta(days=7))
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['_id'], self.rajdhani.pk)

    def test_search_invalid_date(self):
        response = self.client.get('/trains/search', {
            'startStation': 'Delhi', 'endStation': 'Mumbai', 'date': 'not-a-date'
        })

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0], {'msg': 'Invalid date', 'path': 'date'})

    def test_search_requires_both_stations(self):
        response = self.client.get('/trains/search', {'startStation': 'Delhi'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Both startStation and endStation are required.')

    def test_search_pagination(self):
        response = self.client.get('/trains/search', {
            'startStation': 'Delhi', 'endStation': 'Mumbai', 'limit': 1, 'offset': 1
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['limit'], 1)
        self.assertEqual(response.data['offset'], 1)
        self.assertEqual(len(response.data['results']), 1)

    def test_search_no_results(self):
        response = self.client.get('/trains/search', {'startStation': 'Chennai', 'endStation': 'Delhi'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 0)
        self.assertEqual(response.data['results'], [])
