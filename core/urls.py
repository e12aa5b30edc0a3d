"""
URL configuration for users and authentication.
"""
from django.urls import path
from .views import LoginView, LogoutView, ProfileView, UserCreateView, UserDetailView

urlpatterns = [
    path('auth/login', LoginView.as_view(), name='login'),
    path('auth/logout', LogoutView.as_view(), name='logout'),
    path('auth/profile', ProfileView.as_view(), name='profile'),
    path('users', UserCreateView.as_view(), name='user_create'),
    path('users/<str:pk>', UserDetailView.as_view(), name='user_detail'),
]
