from django.contrib import admin
from .models import Donor

@admin.register(Donor)
class DonorAdmin(admin.ModelAdmin):
    list_display = ['get_name', 'blood_group', 'location', 'status', 'last_donation_date', 'avg_rating', 'rating_count']
    list_filter = ['blood_group', 'status']
    search_fields = ['user__first_name', 'user__last_name', 'user__username', 'location']
    readonly_fields = ['avg_rating', 'rating_count', 'created_at']
