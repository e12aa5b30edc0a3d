"""Views for routes, trains and train search."""
import logging

from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample, inline_serializer
from rest_framework import serializers as drf_serializers

from core.permissions import IsAdminOrReadOnly
from utils.exceptions import BusinessRuleViolation, NotFound
from utils.fields import CalendarDateField
from utils.ids import is_valid_object_id
from .models import Route, Train
from .serializers import RouteSerializer, TrainSerializer, TrainWriteSerializer

logger = logging.getLogger(__name__)


# Response serializers for Swagger
class RouteListResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    results = RouteSerializer(many=True)


class TrainListResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    results = TrainSerializer(many=True)


class TrainSearchResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    limit = drf_serializers.IntegerField()
    offset = drf_serializers.IntegerField()
    results = TrainSerializer(many=True)


MessageSerializer = inline_serializer(name='RouteTrainMessage', fields={'message': drf_serializers.CharField()})


def get_or_404(queryset, pk, message):
    if not is_valid_object_id(pk):
        raise NotFound(message)
    try:
        return queryset.get(pk=pk)
    except queryset.model.DoesNotExist:
        raise NotFound(message)


def train_queryset():
    return Train.objects.select_related('route').prefetch_related('available_dates')


class RouteListView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    @extend_schema(
        summary="List routes",
        operation_id="routes_list",
        responses={200: RouteListResponseSerializer},
        tags=["Routes"]
    )
    def get(self, request):
        routes = Route.objects.order_by('start_station', 'end_station')
        return Response({'count': routes.count(), 'results': RouteSerializer(routes, many=True).data})

    @extend_schema(
        summary="Create route (Admin only)",
        request=RouteSerializer,
        responses={201: RouteSerializer},
        examples=[
            OpenApiExample(
                "Create Route",
                value={"startStation": "Delhi", "endStation": "Mumbai"},
                request_only=True
            )
        ],
        tags=["Routes"]
    )
    def post(self, request):
        serializer = RouteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        route = serializer.save()
        logger.info("Created route %s (%s)", route.pk, route)
        return Response(RouteSerializer(route).data, status=status.HTTP_201_CREATED)


class RouteDetailView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    @extend_schema(summary="Get route", responses={200: RouteSerializer}, tags=["Routes"])
    def get(self, request, pk):
        route = get_or_404(Route.objects.all(), pk, 'Route not found')
        return Response(RouteSerializer(route).data)

    @extend_schema(summary="Update route (Admin only)", request=RouteSerializer,
                   responses={200: RouteSerializer}, tags=["Routes"])
    def put(self, request, pk):
        route = get_or_404(Route.objects.all(), pk, 'Route not found')
        serializer = RouteSerializer(route, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        route = serializer.save()
        logger.info("Updated route %s", route.pk)
        return Response(RouteSerializer(route).data)

    @extend_schema(summary="Delete route (Admin only)", responses={200: MessageSerializer}, tags=["Routes"])
    def delete(self, request, pk):
        route = get_or_404(Route.objects.all(), pk, 'Route not found')
        try:
            route.delete()
        except ProtectedError:
            raise BusinessRuleViolation('Route is assigned to one or more trains')
        logger.info("Deleted route %s", pk)
        return Response({'message': 'Route successfully deleted'})


class TrainListView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    @extend_schema(
        summary="List trains",
        operation_id="trains_list",
        parameters=[
            OpenApiParameter(name='route', type=str, required=False, description='Filter by route id'),
        ],
        responses={200: TrainListResponseSerializer},
        tags=["Trains"]
    )
    def get(self, request):
        trains = train_queryset().order_by('departure_time')
        route_id = request.query_params.get('route')
        if route_id:
            trains = trains.filter(route_id=route_id)
        return Response({'count': trains.count(), 'results': TrainSerializer(trains, many=True).data})

    @extend_schema(
        summary="Create train (Admin only)",
        description="Create a train with its per-date availability records.",
        request=TrainWriteSerializer,
        responses={201: TrainSerializer},
        examples=[
            OpenApiExample(
                "Create Train",
                value={
                    "name": "Mumbai Rajdhani",
                    "route": "65f1c0a2b3d4e5f6a7b8c9d0",
                    "departureTime": "2026-01-15T16:55:00Z",
                    "arrivalTime": "2026-01-16T08:35:00Z",
                    "availableSeats": 500,
                    "availableDates": [{"date": "2026-01-15"}, {"date": "2026-01-16", "availableSeats": 300}]
                },
                request_only=True
            )
        ],
        tags=["Trains"]
    )
    def post(self, request):
        serializer = TrainWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        train = serializer.save()
        logger.info("Created train %s with %s availability dates", train.pk, train.available_dates.count())
        return Response(TrainSerializer(train_queryset().get(pk=train.pk)).data, status=status.HTTP_201_CREATED)


class TrainDetailView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    @extend_schema(summary="Get train", responses={200: TrainSerializer}, tags=["Trains"])
    def get(self, request, pk):
        train = get_or_404(train_queryset(), pk, 'Train not found')
        return Response(TrainSerializer(train).data)

    @extend_schema(
        summary="Update train (Admin only)",
        description="Updates train fields. Availability records are matched by date: "
                    "existing dates get the new capacity, new dates are added.",
        request=TrainWriteSerializer,
        responses={200: TrainSerializer},
        tags=["Trains"]
    )
    def put(self, request, pk):
        train = get_or_404(Train.objects.all(), pk, 'Train not found')
        serializer = TrainWriteSerializer(train, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info("Updated train %s", pk)
        return Response(TrainSerializer(train_queryset().get(pk=pk)).data)

    @extend_schema(summary="Delete train (Admin only)", responses={200: MessageSerializer}, tags=["Trains"])
    def delete(self, request, pk):
        train = get_or_404(Train.objects.all(), pk, 'Train not found')
        try:
            train.delete()
        except ProtectedError:
            raise BusinessRuleViolation('Train has existing bookings')
        logger.info("Deleted train %s", pk)
        return Response({'message': 'Train successfully deleted'})


class TrainSearchView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    @extend_schema(
        summary="Search trains between stations",
        description="Search trains by route stations, optionally only those running on a date. "
                    "Requests are logged to MongoDB.",
        parameters=[
            OpenApiParameter(name='startStation', type=str, required=True, description='Start station (e.g., Delhi)'),
            OpenApiParameter(name='endStation', type=str, required=True, description='End station (e.g., Mumbai)'),
            OpenApiParameter(name='date', type=str, required=False, description='Travel date (YYYY-MM-DD)'),
            OpenApiParameter(name='limit', type=int, required=False, description='Results per page (default: 10, max: 100)'),
            OpenApiParameter(name='offset', type=int, required=False, description='Pagination offset (default: 0)'),
        ],
        responses={200: TrainSearchResponseSerializer},
        tags=["Trains"]
    )
    def get(self, request):
        start = request.query_params.get('startStation', '').strip()
        end = request.query_params.get('endStation', '').strip()
        date = request.query_params.get('date')
        limit = request.query_params.get('limit', 10)
        offset = request.query_params.get('offset', 0)

        if not start or not end:
            return Response({'error': 'Both startStation and endStation are required.'},
                            status=status.HTTP_400_BAD_REQUEST)

        try:
            limit = min(max(int(limit), 1), 100)
            offset = max(int(offset), 0)
        except ValueError:
            limit, offset = 10, 0

        queryset = train_queryset().filter(
            route__start_station__iexact=start,
            route__end_station__iexact=end
        )

        if date:
            try:
                travel_date = CalendarDateField(error_messages={'invalid': 'Invalid date'}).run_validation(date)
            except drf_serializers.ValidationError as e:
                raise drf_serializers.ValidationError({'date': e.detail})
            queryset = queryset.filter(available_dates__date=travel_date)

        queryset = queryset.order_by('departure_time').distinct()
        total_count = queryset.count()
        trains = queryset[offset:offset + limit]

        return Response({
            'count': total_count, 'limit': limit, 'offset': offset,
            'results': TrainSerializer(trains, many=True).data
        })
