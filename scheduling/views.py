"""Views for studio session scheduling.

Domain errors raised by services are rendered by
``scheduling.handlers.domain_exception_handler``.
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .models import RecurrenceTemplate, Studio
from .serializers import (
    AutoScheduleToggleSerializer,
    DateRangeQuerySerializer,
    RecurrenceTemplateCreateSerializer,
    RecurrenceTemplateReadSerializer,
    RecurrenceTemplateUpdateSerializer,
    ScheduleRunSerializer,
    SessionCreateSerializer,
    SessionFromTemplateSerializer,
    SessionNotesSerializer,
    SessionReadSerializer,
    StudioSerializer,
    scheduling_result_data,
)
from .types import TemplateUpdateData


class StudioListView(APIView):
    """
    GET /api/studios/ - List studios
    """

    def get(self, request):
        serializer = StudioSerializer(Studio.objects.all(), many=True)
        return Response(serializer.data)


class RecurrenceTemplateListCreateView(APIView):
    """
    List all templates or create a new one.

    GET /api/templates/ - List all templates
    POST /api/templates/ - Create a template (catches up when auto-scheduled)
    """

    def get(self, request):
        """List all templates."""
        templates = RecurrenceTemplate.objects.all()
        serializer = RecurrenceTemplateReadSerializer(templates, many=True)
        return Response(serializer.data)

    def post(self, request):
        """Create a new template."""
        serializer = RecurrenceTemplateCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        template, result = services.create_template(
            studio=services.get_studio(data['studio_id']),
            name=data['name'],
            title=data['title'],
            weekday=data['weekday'],
            start_time=data['start_time'],
            end_time=data['end_time'],
            auto_schedule=data['auto_schedule'],
            is_active=data['is_active'],
        )

        return Response({
            'template': RecurrenceTemplateReadSerializer(template).data,
            'scheduling': scheduling_result_data(result),
        }, status=status.HTTP_201_CREATED)


class RecurrenceTemplateDetailView(APIView):
    """
    Retrieve, update, or delete a template.

    GET /api/templates/{id}/ - Retrieve template
    PATCH /api/templates/{id}/ - Update template
    DELETE /api/templates/{id}/ - Delete template (sessions are kept)
    """

    def get(self, request, pk):
        """Retrieve a template."""
        template = services.get_template(pk)
        return Response(RecurrenceTemplateReadSerializer(template).data)

    def patch(self, request, pk):
        """Update a template."""
        template = services.get_template(pk)
        serializer = RecurrenceTemplateUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        update_data = TemplateUpdateData(**serializer.validated_data)
        updated_template, result = services.update_template(template, update_data)

        return Response({
            'template': RecurrenceTemplateReadSerializer(updated_template).data,
            'scheduling': scheduling_result_data(result),
        })

    def delete(self, request, pk):
        """Delete a template."""
        template = services.get_template(pk)
        name = template.name
        services.delete_template(template)

        return Response({
            'message': f'Template "{name}" has been deleted.'
        }, status=status.HTTP_200_OK)


class TemplateAutoScheduleView(APIView):
    """
    POST /api/templates/{id}/auto-schedule/ - Enable or disable auto-scheduling
    """

    def post(self, request, pk):
        template = services.get_template(pk)
        serializer = AutoScheduleToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.set_auto_schedule(template, serializer.validated_data['enabled'])

        return Response({
            'template': RecurrenceTemplateReadSerializer(template).data,
            'scheduling': scheduling_result_data(result),
        })


class TemplateSessionCreateView(APIView):
    """
    POST /api/templates/{id}/sessions/ - Create a session from a template on a date
    """

    def post(self, request, pk):
        template = services.get_template(pk)
        serializer = SessionFromTemplateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = services.create_session_from_template(
            template, serializer.validated_data['date']
        )
        return Response(SessionReadSerializer(session).data, status=status.HTTP_201_CREATED)


class SessionListView(APIView):
    """
    List sessions within a date range or create a manual session.

    GET /api/sessions/?start=X&end=Y - List sessions in range
    POST /api/sessions/ - Create a manual session
    """

    def get(self, request):
        """List sessions within a date range."""
        query_serializer = DateRangeQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)

        data = query_serializer.validated_data
        sessions = services.get_sessions_in_range(
            data['start'],
            data['end'],
            status=data.get('status'),
            studio_id=data.get('studio')
        )

        return Response(SessionReadSerializer(sessions, many=True).data)

    def post(self, request):
        """Create a manual session."""
        serializer = SessionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        session = services.create_manual_session(
            studio=services.get_studio(data['studio_id']),
            title=data['title'],
            start_datetime=data['start_datetime'],
            end_datetime=data['end_datetime'],
            notes=data.get('notes', '')
        )

        return Response(SessionReadSerializer(session).data, status=status.HTTP_201_CREATED)


class SessionDetailView(APIView):
    """
    GET /api/sessions/{id}/ - Retrieve session
    PATCH /api/sessions/{id}/ - Update session notes
    """

    def get(self, request, pk):
        session = services.get_session(pk)
        return Response(SessionReadSerializer(session).data)

    def patch(self, request, pk):
        session = services.get_session(pk)
        serializer = SessionNotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = services.update_session_notes(session, serializer.validated_data['notes'])
        return Response(SessionReadSerializer(session).data)


class SessionCompleteView(APIView):
    """
    POST /api/sessions/{id}/complete/
    """

    def post(self, request, pk):
        session = services.complete_session(services.get_session(pk))
        return Response(SessionReadSerializer(session).data)


class SessionCancelView(APIView):
    """
    POST /api/sessions/{id}/cancel/
    """

    def post(self, request, pk):
        session = services.cancel_session(services.get_session(pk))
        return Response(SessionReadSerializer(session).data)


class ScheduleRunView(APIView):
    """
    POST /api/schedule/run/ - Run the catch-up sweep over all auto templates
    """

    def post(self, request):
        serializer = ScheduleRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.catch_up_all(today=serializer.validated_data.get('date'))
        return Response(scheduling_result_data(result))
