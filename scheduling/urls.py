"""
URL routing for the scheduling API.
"""

from django.urls import path
from .views import (
    RecurrenceTemplateDetailView,
    RecurrenceTemplateListCreateView,
    ScheduleRunView,
    SessionCancelView,
    SessionCompleteView,
    SessionDetailView,
    SessionListView,
    StudioListView,
    TemplateAutoScheduleView,
    TemplateSessionCreateView,
)

urlpatterns = [
    path('studios/', StudioListView.as_view(), name='studio-list'),
    path('templates/', RecurrenceTemplateListCreateView.as_view(), name='template-list-create'),
    path('templates/<int:pk>/', RecurrenceTemplateDetailView.as_view(), name='template-detail'),
    path('templates/<int:pk>/auto-schedule/', TemplateAutoScheduleView.as_view(), name='template-auto-schedule'),
    path('templates/<int:pk>/sessions/', TemplateSessionCreateView.as_view(), name='template-session-create'),
    path('sessions/', SessionListView.as_view(), name='session-list-create'),
    path('sessions/<int:pk>/', SessionDetailView.as_view(), name='session-detail'),
    path('sessions/<int:pk>/complete/', SessionCompleteView.as_view(), name='session-complete'),
    path('sessions/<int:pk>/cancel/', SessionCancelView.as_view(), name='session-cancel'),
    path('schedule/run/', ScheduleRunView.as_view(), name='schedule-run'),
]
