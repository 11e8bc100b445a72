from django.contrib import admin
from .models import BloodRequest, RequestAuditLog

@admin.register(BloodRequest)
class BloodRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'requester', 'donor', 'blood_group', 'status', 'rating', 'created_at']
    list_filter = ['blood_group', 'status', 'created_at']
    search_fields = ['location', 'note', 'requester__user__username', 'donor__user__username']
    # Status changes go through the lifecycle engine so donor ratings stay consistent.
    readonly_fields = ['status', 'rating', 'created_at', 'updated_at']

@admin.register(RequestAuditLog)
class RequestAuditLogAdmin(admin.ModelAdmin):
    list_display = ['request_id', 'action', 'actor', 'status_before', 'status_after', 'created_at']
    list_filter = ['action', 'status_after']
    search_fields = ['request_id', 'note']
