"""
Shared serializer fields.
"""
from django.utils.dateparse import parse_datetime
from rest_framework import serializers


class CalendarDateField(serializers.DateField):
    """
    Date field that also accepts full ISO 8601 datetimes
    (e.g. ``2024-05-01T10:30:00.000Z``) and keeps only the date part.
    """

    def to_internal_value(self, value):
        if isinstance(value, str) and 'T' in value:
            try:
                parsed = parse_datetime(value.strip())
            except ValueError:
                parsed = None
            if parsed is None:
                self.fail('invalid', format='YYYY-MM-DD')
            return parsed.date()
        return super().to_internal_value(value)
