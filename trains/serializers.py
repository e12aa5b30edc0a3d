"""
Serializers for routes, trains and availability records.
"""
from django.db import transaction
from rest_framework import serializers

from utils.fields import CalendarDateField
from .models import Route, Train, TrainDate


def _required(field_name):
    message = f'{field_name} is required'
    return {'required': message, 'blank': message, 'null': message}


class RouteSerializer(serializers.ModelSerializer):
    """Serializer for Route model."""
    _id = serializers.CharField(source='id', read_only=True)
    startStation = serializers.CharField(source='start_station', max_length=100,
                                         error_messages=_required('startStation'))
    endStation = serializers.CharField(source='end_station', max_length=100,
                                       error_messages=_required('endStation'))
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Route
        fields = ['_id', 'startStation', 'endStation', 'createdAt']

    def validate(self, attrs):
        start = attrs.get('start_station', getattr(self.instance, 'start_station', ''))
        end = attrs.get('end_station', getattr(self.instance, 'end_station', ''))

        if start.strip().lower() == end.strip().lower():
            raise serializers.ValidationError({
                'endStation': "Start and end stations must differ"
            })
        return attrs


class RouteDetailsSerializer(serializers.ModelSerializer):
    """Stations of a train's route, embedded in train responses."""
    startStation = serializers.CharField(source='start_station', read_only=True)
    endStation = serializers.CharField(source='end_station', read_only=True)

    class Meta:
        model = Route
        fields = ['startStation', 'endStation']


class TrainDateSerializer(serializers.ModelSerializer):
    """Serializer for TrainDate model."""
    availableSeats = serializers.IntegerField(source='available_seats', read_only=True)
    seatsBooked = serializers.IntegerField(source='seats_booked', read_only=True)
    remainingSeats = serializers.IntegerField(source='remaining_seats', read_only=True)

    class Meta:
        model = TrainDate
        fields = ['date', 'availableSeats', 'seatsBooked', 'remainingSeats']


class TrainDateInputSerializer(serializers.Serializer):
    """Availability record as sent by clients; capacity defaults to the train's."""
    date = CalendarDateField()
    availableSeats = serializers.IntegerField(source='available_seats', min_value=0, required=False)


class TrainSerializer(serializers.ModelSerializer):
    """Serializer for viewing trains."""
    _id = serializers.CharField(source='id', read_only=True)
    route = serializers.CharField(source='route_id', read_only=True)
    routeDetails = RouteDetailsSerializer(source='route', read_only=True)
    departureTime = serializers.DateTimeField(source='departure_time', read_only=True)
    arrivalTime = serializers.DateTimeField(source='arrival_time', read_only=True)
    availableSeats = serializers.IntegerField(source='available_seats', read_only=True)
    availableDates = TrainDateSerializer(source='available_dates', many=True, read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Train
        fields = [
            '_id', 'name', 'route', 'routeDetails', 'departureTime', 'arrivalTime',
            'availableSeats', 'availableDates', 'createdAt'
        ]


class TrainWriteSerializer(serializers.ModelSerializer):
    """Serializer for creating/updating trains together with their availability records."""
    route = serializers.PrimaryKeyRelatedField(
        queryset=Route.objects.all(),
        error_messages={
            **_required('route'),
            'does_not_exist': 'Route not found',
            'incorrect_type': 'Invalid ID format',
        }
    )
    departureTime = serializers.DateTimeField(source='departure_time')
    arrivalTime = serializers.DateTimeField(source='arrival_time')
    availableSeats = serializers.IntegerField(source='available_seats', min_value=1)
    availableDates = TrainDateInputSerializer(source='available_dates', many=True, required=False)

    class Meta:
        model = Train
        fields = ['name', 'route', 'departureTime', 'arrivalTime', 'availableSeats', 'availableDates']

    def validate_availableDates(self, value):
        """Reject the same date listed twice."""
        dates = [item['date'] for item in value]
        duplicates = sorted({d for d in dates if dates.count(d) > 1})
        if duplicates:
            raise serializers.ValidationError(
                f"Duplicate availability date: {', '.join(str(d) for d in duplicates)}"
            )
        return value

    def validate(self, attrs):
        departure = attrs.get('departure_time', getattr(self.instance, 'departure_time', None))
        arrival = attrs.get('arrival_time', getattr(self.instance, 'arrival_time', None))

        if departure and arrival and arrival <= departure:
            raise serializers.ValidationError({
                'arrivalTime': "Arrival time must be after departure time"
            })
        return attrs

    def create(self, validated_data):
        """Create a train and its availability records."""
        dates = validated_data.pop('available_dates', [])

        with transaction.atomic():
            train = Train.objects.create(**validated_data)
            TrainDate.objects.bulk_create([
                TrainDate(
                    train=train,
                    date=item['date'],
                    available_seats=item.get('available_seats', train.available_seats)
                )
                for item in dates
            ])
        return train

    def update(self, instance, validated_data):
        """Update train fields and upsert availability records by date."""
        dates = validated_data.pop('available_dates', None)

        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()

            for item in dates or []:
                record = instance.available_dates.select_for_update().filter(date=item['date']).first()
                if record is None:
                    TrainDate.objects.create(
                        train=instance,
                        date=item['date'],
                        available_seats=item.get('available_seats', instance.available_seats)
                    )
                    continue

                capacity = item.get('available_seats', record.available_seats)
                if capacity < record.seats_booked:
                    raise serializers.ValidationError({
                        'availableDates': f"Capacity for {record.date} cannot be lower than seats already booked"
                    })
                record.available_seats = capacity
                record.version += 1
                record.save(update_fields=['available_seats', 'version', 'updated_at'])
        return instance
