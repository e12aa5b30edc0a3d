from django.contrib import admin
from .models import Route, Train, TrainDate


class TrainDateInline(admin.TabularInline):
    model = TrainDate
    extra = 0
    readonly_fields = ['seats_booked', 'version']


@admin.register(Route)
class RouteAdmin(admin.ModelAdmin):
    list_display = ['start_station', 'end_station', 'created_at']
    search_fields = ['start_station', 'end_station']
    ordering = ['start_station', 'end_station']


@admin.register(Train)
class TrainAdmin(admin.ModelAdmin):
    list_display = ['name', 'route', 'departure_time', 'arrival_time', 'available_seats']
    list_filter = ['route']
    search_fields = ['name', 'route__start_station', 'route__end_station']
    inlines = [TrainDateInline]
    ordering = ['departure_time']


@admin.register(TrainDate)
class TrainDateAdmin(admin.ModelAdmin):
    list_display = ['train', 'date', 'available_seats', 'seats_booked', 'remaining_seats', 'updated_at']
    list_filter = ['date']
    search_fields = ['train__name']
    readonly_fields = ['seats_booked', 'version']

    def remaining_seats(self, obj):
        return obj.remaining_seats
    remaining_seats.short_description = 'Remaining'
