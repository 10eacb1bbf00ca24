"""
Admin configuration for the scheduling app.
"""

from django.contrib import admin
from .models import RecurrenceTemplate, Session, Studio


@admin.register(Studio)
class StudioAdmin(admin.ModelAdmin):
    list_display = ['name', 'hourly_rate', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']


@admin.register(RecurrenceTemplate)
class RecurrenceTemplateAdmin(admin.ModelAdmin):
    """Admin interface for RecurrenceTemplate model."""

    list_display = ['name', 'studio', 'weekday_name', 'start_time', 'end_time', 'is_active', 'auto_schedule', 'last_generated_date']
    list_filter = ['is_active', 'auto_schedule', 'weekday', 'studio']
    search_fields = ['name', 'title']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'studio', 'title', 'is_active')
        }),
        ('Recurrence Rules', {
            'fields': ('weekday', 'start_time', 'end_time', 'duration_hours')
        }),
        ('Auto-scheduling', {
            'fields': ('auto_schedule', 'last_generated_date')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = ['duration_hours', 'created_at', 'updated_at']


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    """Admin interface for Session model."""

    list_display = ['title', 'studio', 'start_datetime', 'duration_hours', 'status', 'source']
    list_filter = ['status', 'source', 'studio']
    search_fields = ['title', 'notes']
    date_hierarchy = 'start_datetime'

    fieldsets = (
        ('Basic Information', {
            'fields': ('studio', 'title', 'notes')
        }),
        ('Schedule', {
            'fields': ('start_datetime', 'end_datetime', 'duration_hours')
        }),
        ('Status', {
            'fields': ('status', 'source', 'source_template')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = ['source', 'source_template', 'created_at', 'updated_at']
