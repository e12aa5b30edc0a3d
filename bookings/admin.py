from django.contrib import admin
from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'train', 'seats_booked', 'booking_date', 'created_at']
    list_filter = ['booking_date']
    search_fields = ['id', 'user__email', 'train__name']
    readonly_fields = ['seats_booked', 'booking_date', 'created_at', 'updated_at']
    ordering = ['-created_at']

    def has_add_permission(self, request):
        # Bookings must reserve seats; create them through POST /bookings
        return False
