"""
URL configuration for routes and trains.
"""
from django.urls import path
from .views import RouteListView, RouteDetailView, TrainListView, TrainDetailView, TrainSearchView

urlpatterns = [
    path('routes', RouteListView.as_view(), name='route_list'),
    path('routes/<str:pk>', RouteDetailView.as_view(), name='route_detail'),
    path('trains', TrainListView.as_view(), name='train_list'),
    path('trains/search', TrainSearchView.as_view(), name='train_search'),
    path('trains/<str:pk>', TrainDetailView.as_view(), name='train_detail'),
]
