"""
Management command to seed the database with sample data.

Usage:
    python manage.py seed_db           # Seed with default data
    python manage.py seed_db --clear   # Clear existing data first
"""
from datetime import datetime, time, timedelta
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import User
from trains.models import Route, Train, TrainDate
from bookings.models import Booking

ADMIN_EMAIL = 'admin@railbook.dev'
ADMIN_PASSWORD = 'Admin@1234'
USER_PASSWORD = 'Passw0rd123'
DAYS_AHEAD = 7


class Command(BaseCommand):
    help = 'Seed the database with sample data for testing'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Seeding database...')

        with transaction.atomic():
            users = self.create_users()
            routes = self.create_routes()
            trains = self.create_trains(routes)
            self.create_sample_bookings(users, trains)

        self.stdout.write(self.style.SUCCESS('Database seeded successfully!'))
        self.print_summary()

    def clear_data(self):
        Booking.objects.all().delete()
        TrainDate.objects.all().delete()
        Train.objects.all().delete()
        Route.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()
        self.stdout.write(self.style.WARNING('  Cleared all non-superuser data'))

    def create_users(self):
        users = []

        admin, created = User.objects.get_or_create(
            email=ADMIN_EMAIL,
            defaults={
                'name': 'Admin User',
                'is_admin': True,
                'is_staff': True,
            }
        )
        if created:
            admin.set_password(ADMIN_PASSWORD)
            admin.save()
            self.stdout.write(f'  Created admin: {ADMIN_EMAIL} / {ADMIN_PASSWORD}')
        users.append(admin)

        test_users = [
            ('john@example.com', 'John Doe'),
            ('jane@example.com', 'Jane Smith'),
            ('raj@example.com', 'Raj Kumar'),
        ]

        for email, name in test_users:
            user, created = User.objects.get_or_create(email=email, defaults={'name': name})
            if created:
                user.set_password(USER_PASSWORD)
                user.save()
                self.stdout.write(f'  Created user: {email} / {USER_PASSWORD}')
            users.append(user)

        return users

    def create_routes(self):
        stations = [
            ('Delhi', 'Mumbai'),
            ('Delhi', 'Kolkata'),
            ('Mumbai', 'Bangalore'),
            ('Chennai', 'Bangalore'),
            ('Kolkata', 'Delhi'),
        ]

        routes = []
        for start, end in stations:
            route, created = Route.objects.get_or_create(start_station=start, end_station=end)
            if created:
                self.stdout.write(f'  Created route: {route}')
            routes.append(route)
        return routes

    def create_trains(self, routes):
        trains_data = [
            ('Mumbai Rajdhani', time(16, 55), timedelta(hours=15, minutes=40), 500),
            ('Howrah Rajdhani', time(17, 0), timedelta(hours=17), 450),
            ('Udyan Express', time(23, 0), timedelta(hours=7), 600),
            ('Shatabdi Express', time(6, 0), timedelta(hours=5), 300),
            ('Poorva Express', time(14, 0), timedelta(hours=18), 500),
        ]

        trains = []
        today = timezone.localdate()

        for route, (name, departs, duration, seats) in zip(routes, trains_data):
            departure = timezone.make_aware(datetime.combine(today + timedelta(days=1), departs))
            train, created = Train.objects.get_or_create(
                name=name,
                route=route,
                defaults={
                    'departure_time': departure,
                    'arrival_time': departure + duration,
                    'available_seats': seats,
                }
            )
            if created:
                TrainDate.objects.bulk_create([
                    TrainDate(train=train, date=today + timedelta(days=offset + 1), available_seats=seats)
                    for offset in range(DAYS_AHEAD)
                ])
                self.stdout.write(f'  Created train: {name} ({route}), {DAYS_AHEAD} dates')
            trains.append(train)

        return trains

    def create_sample_bookings(self, users, trains):
        regular_users = [u for u in users if not u.is_admin]

        bookings_created = 0
        for user, train in zip(regular_users[:2], trains):
            record = train.available_dates.first()
            if record is None or not record.can_book(2):
                continue

            record.reserve(2)
            Booking.objects.create(user=user, train=train, seats_booked=2, booking_date=record.date)
            bookings_created += 1

        self.stdout.write(f'  Created {bookings_created} sample bookings')

    def print_summary(self):
        counts = [
            ('Users', User), ('Routes', Route), ('Trains', Train),
            ('Availability dates', TrainDate), ('Bookings', Booking),
        ]
        self.stdout.write('')
        for label, model in counts:
            self.stdout.write(f'  {label + ":":<20} {model.objects.count()}')
        self.stdout.write('')
        self.stdout.write(f'  Admin login: {ADMIN_EMAIL} / {ADMIN_PASSWORD}')
        self.stdout.write(f'  User login:  john@example.com / {USER_PASSWORD}')
