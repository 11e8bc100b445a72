"""bloodlink URL Configuration

The engine is exposed as JSON endpoints under ``donor/`` (search and
eligibility) and ``blood/`` (request lifecycle).
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('donor/', include('donor.urls')),
    path('blood/', include('blood.urls')),
]
