"""Views for booking management."""
import logging

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample, inline_serializer
from rest_framework import serializers as drf_serializers

from utils.exceptions import NotFound
from utils.ids import is_valid_object_id
from .models import Booking
from .serializers import BookingSerializer, BookingCreateSerializer, BookingUpdateSerializer

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = 'Booking not found'


# Response serializers for Swagger
class BookingListResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    results = BookingSerializer(many=True)


ErrorSerializer = inline_serializer(name='BookingError', fields={'error': drf_serializers.CharField()})


class BookingListView(APIView):
    """List or create bookings."""
    permission_classes = [AllowAny]

    @extend_schema(
        summary="List bookings",
        operation_id="bookings_list",
        description="Returns bookings, newest first, optionally filtered by user and/or train.",
        parameters=[
            OpenApiParameter(name='user', type=str, required=False, description='Filter by user id'),
            OpenApiParameter(name='train', type=str, required=False, description='Filter by train id'),
        ],
        responses={200: BookingListResponseSerializer},
        tags=["Bookings"]
    )
    def get(self, request):
        bookings = Booking.objects.all()
        for param in ('user', 'train'):
            value = request.query_params.get(param)
            if value:
                bookings = bookings.filter(**{f'{param}_id': value})

        return Response({
            'count': bookings.count(),
            'results': BookingSerializer(bookings, many=True).data
        })

    @extend_schema(
        summary="Book seats on a train",
        description="Checks the train's availability for the booking date, reserves the seats "
                    "and stores the booking.",
        request=BookingCreateSerializer,
        responses={201: BookingSerializer, 400: ErrorSerializer, 404: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Book 2 seats",
                value={
                    "user": "65f1c0a2b3d4e5f6a7b8c9d0",
                    "train": "65f1c0a2b3d4e5f6a7b8c9d1",
                    "seatsBooked": 2,
                    "bookingDate": "2026-01-15"
                },
                request_only=True
            )
        ],
        tags=["Bookings"]
    )
    def post(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = serializer.save()
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingDetailView(APIView):
    """Get, update or cancel a booking by id."""
    permission_classes = [AllowAny]

    def get_object(self, pk):
        if not is_valid_object_id(pk):
            raise NotFound(NOT_FOUND_MESSAGE)
        try:
            return Booking.objects.get(pk=pk)
        except Booking.DoesNotExist:
            raise NotFound(NOT_FOUND_MESSAGE)

    @extend_schema(
        summary="Get booking",
        responses={200: BookingSerializer, 404: ErrorSerializer},
        tags=["Bookings"]
    )
    def get(self, request, pk):
        return Response(BookingSerializer(self.get_object(pk)).data)

    @extend_schema(
        summary="Update booking",
        description="Change seatsBooked and/or bookingDate. Seats are released from the old date "
                    "and re-reserved; the update is rejected if they no longer fit.",
        request=BookingUpdateSerializer,
        responses={200: BookingSerializer, 400: ErrorSerializer, 404: ErrorSerializer},
        tags=["Bookings"]
    )
    def put(self, request, pk):
        booking = self.get_object(pk)
        serializer = BookingUpdateSerializer(booking, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        booking = serializer.save()
        return Response(BookingSerializer(booking).data)

    @extend_schema(
        summary="Delete booking",
        description="Releases the booked seats back to the train and deletes the booking.",
        responses={200: inline_serializer(name='BookingDeleted', fields={'message': drf_serializers.CharField()}),
                   404: ErrorSerializer},
        tags=["Bookings"]
    )
    def delete(self, request, pk):
        if not self.get_object(pk).cancel():
            raise NotFound(NOT_FOUND_MESSAGE)

        logger.info("Booking %s deleted", pk)
        return Response({'message': 'Booking successfully deleted'})
