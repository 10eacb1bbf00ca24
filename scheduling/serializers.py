"""
Serializers for studio session scheduling.
"""

from rest_framework import serializers

from .models import RecurrenceTemplate, Session, Studio


class StudioSerializer(serializers.ModelSerializer):
    """Serializer for reading Studio (output)."""

    class Meta:
        model = Studio
        fields = ['id', 'name', 'hourly_rate', 'is_active']


class RecurrenceTemplateReadSerializer(serializers.ModelSerializer):
    """Serializer for reading/displaying RecurrenceTemplate (output)."""

    weekday_name = serializers.ReadOnlyField()

    class Meta:
        model = RecurrenceTemplate
        fields = [
            'id',
            'name',
            'studio',
            'title',
            'weekday',
            'weekday_name',
            'start_time',
            'end_time',
            'duration_hours',
            'is_active',
            'auto_schedule',
            'last_generated_date',
            'created_at',
            'updated_at',
        ]


class RecurrenceTemplateCreateSerializer(serializers.Serializer):
    """Serializer for creating a recurrence template."""

    studio_id = serializers.IntegerField()
    name = serializers.CharField(max_length=200)
    title = serializers.CharField(max_length=200)
    weekday = serializers.IntegerField(min_value=0, max_value=6)
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    is_active = serializers.BooleanField(default=True)
    auto_schedule = serializers.BooleanField(default=False)

    def validate(self, data):
        """Validate the time range."""
        if data['end_time'] <= data['start_time']:
            raise serializers.ValidationError({
                'end_time': 'End time must be after start time.'
            })
        return data


class RecurrenceTemplateUpdateSerializer(serializers.Serializer):
    """Serializer for updating a recurrence template (input)."""

    name = serializers.CharField(max_length=200, required=False)
    title = serializers.CharField(max_length=200, required=False)
    weekday = serializers.IntegerField(min_value=0, max_value=6, required=False)
    start_time = serializers.TimeField(required=False)
    end_time = serializers.TimeField(required=False)
    is_active = serializers.BooleanField(required=False)
    auto_schedule = serializers.BooleanField(required=False)


class AutoScheduleToggleSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()


class SessionFromTemplateSerializer(serializers.Serializer):
    date = serializers.DateField()


class SessionReadSerializer(serializers.ModelSerializer):
    """Serializer for reading/displaying Session (output)."""

    source_template_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Session
        fields = [
            'id',
            'studio',
            'title',
            'start_datetime',
            'end_datetime',
            'duration_hours',
            'status',
            'source',
            'source_template_id',
            'notes',
            'created_at',
            'updated_at',
        ]


class SessionCreateSerializer(serializers.Serializer):
    """Serializer for creating a manual session."""

    studio_id = serializers.IntegerField()
    title = serializers.CharField(max_length=200)
    start_datetime = serializers.DateTimeField()
    end_datetime = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, data):
        if data['end_datetime'] <= data['start_datetime']:
            raise serializers.ValidationError({
                'end_datetime': 'End must be after start.'
            })
        return data


class SessionNotesSerializer(serializers.Serializer):
    notes = serializers.CharField(allow_blank=True)


class DateRangeQuerySerializer(serializers.Serializer):
    """Serializer for date range query parameters."""

    start = serializers.DateTimeField(required=True)
    end = serializers.DateTimeField(required=True)
    status = serializers.ChoiceField(
        choices=['scheduled', 'cancelled', 'completed'],
        required=False,
        allow_null=True
    )
    studio = serializers.IntegerField(required=False)

    def validate(self, data):
        """Ensure start is before end."""
        if data['start'] >= data['end']:
            raise serializers.ValidationError(
                "Start datetime must be before end datetime."
            )
        return data


class ScheduleRunSerializer(serializers.Serializer):
    """Optional reference day for a manually triggered scheduler run."""

    date = serializers.DateField(required=False)


def scheduling_result_data(result):
    """Render a SchedulingResult for API responses."""
    return {
        'created': SessionReadSerializer(result.created, many=True).data,
        'created_count': result.created_count,
        'skipped': result.skipped,
        'errors': [
            {'template_id': error.template_id, 'message': error.message}
            for error in result.errors
        ],
    }
