"""Views for users and session authentication."""
import logging

from django.contrib.auth import login, logout, update_session_auth_hash
from django.db import transaction
from django.shortcuts import redirect
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.exceptions import PermissionDenied
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiResponse, inline_serializer
from rest_framework import serializers as drf_serializers

from utils.exceptions import InvalidFormat, NotFound
from utils.ids import is_valid_object_id
from .models import User
from .permissions import session_required
from .serializers import UserSerializer, UserWriteSerializer, UserLoginSerializer, ProfileSerializer

logger = logging.getLogger(__name__)

LOGIN_PATH = '/auth/login'
PROFILE_PATH = '/auth/profile'


MessageSerializer = inline_serializer(name='Message', fields={'message': drf_serializers.CharField()})
ErrorSerializer = inline_serializer(name='Error', fields={'error': drf_serializers.CharField()})


class LoginView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Login prompt",
        responses={200: MessageSerializer},
        tags=["Authentication"]
    )
    def get(self, request):
        return Response({'message': 'Please login with correct credentials.'})

    @extend_schema(
        summary="Login user",
        description="Authenticate with email and password. Starts a session and redirects to the profile; "
                    "redirects back to the login page on failure.",
        request=UserLoginSerializer,
        responses={302: OpenApiResponse(description="Redirect to /auth/profile or /auth/login")},
        examples=[
            OpenApiExample(
                "Login Example",
                value={"email": "admin@railbook.dev", "password": "Admin@1234"},
                request_only=True
            )
        ],
        tags=["Authentication"]
    )
    def post(self, request):
        serializer = UserLoginSerializer(data=request.data, context={'request': request})
        if not serializer.is_valid():
            logger.info("Failed login attempt for %s", request.data.get('email'))
            return redirect(LOGIN_PATH)

        user = serializer.validated_data['user']
        login(request, user)
        logger.info("User %s logged in", user.pk)
        return redirect(PROFILE_PATH)


class LogoutView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Logout user",
        responses={302: OpenApiResponse(description="Redirect to /auth/login")},
        tags=["Authentication"]
    )
    def get(self, request):
        if request.user.is_authenticated:
            logger.info("User %s logged out", request.user.pk)
        logout(request)
        return redirect(LOGIN_PATH)


@session_required
class ProfileView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get current user profile",
        description="Returns the profile of the logged-in user; redirects to /auth/login without a session.",
        responses={200: ProfileSerializer},
        tags=["Authentication"]
    )
    def get(self, request):
        return Response(ProfileSerializer(request.user).data)


class UserCreateView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Register a new user",
        request=UserWriteSerializer,
        responses={201: UserSerializer, 400: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Register Example",
                value={"name": "John Doe", "email": "john@example.com", "password": "Password123"},
                request_only=True
            )
        ],
        tags=["Users"]
    )
    def post(self, request):
        serializer = UserWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            user = serializer.save()
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info("Created user %s", user.pk)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@session_required
class UserDetailView(APIView):
    """Read, update or delete your own account."""
    permission_classes = [IsAuthenticated]

    def get_object(self, request, pk):
        if not is_valid_object_id(pk):
            raise InvalidFormat('Invalid ID format')
        try:
            user = User.objects.get(pk=pk)
        except User.DoesNotExist:
            raise NotFound('User not found')
        if user.pk != request.user.pk and not request.user.is_admin:
            raise PermissionDenied('You can only manage your own account')
        return user

    @extend_schema(
        summary="Get user",
        responses={200: UserSerializer, 400: ErrorSerializer, 404: ErrorSerializer},
        tags=["Users"]
    )
    def get(self, request, pk):
        return Response(UserSerializer(self.get_object(request, pk)).data)

    @extend_schema(
        summary="Update user",
        request=UserWriteSerializer,
        responses={200: UserSerializer, 400: ErrorSerializer, 404: ErrorSerializer},
        tags=["Users"]
    )
    def put(self, request, pk):
        user = self.get_object(request, pk)
        serializer = UserWriteSerializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            user = serializer.save()
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        if 'password' in serializer.validated_data and user.pk == request.user.pk:
            # Changing the password rotates the session hash; keep the owner logged in.
            update_session_auth_hash(request, user)

        logger.info("Updated user %s", user.pk)
        return Response(UserSerializer(user).data)

    @extend_schema(
        summary="Delete user",
        description="Deletes the account and releases the seats held by its bookings.",
        responses={200: MessageSerializer, 400: ErrorSerializer, 404: ErrorSerializer},
        tags=["Users"]
    )
    def delete(self, request, pk):
        user = self.get_object(request, pk)
        is_self = user.pk == request.user.pk

        with transaction.atomic():
            for booking in user.bookings.select_for_update().order_by('pk'):
                booking.release_seats()
            user.delete()

        logger.info("Deleted user %s", pk)
        if is_self:
            logout(request)
        return Response({'message': 'User successfully deleted'})
