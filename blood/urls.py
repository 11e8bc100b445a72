from django.urls import path
from . import views

urlpatterns = [
    path('requests/', views.my_requests_view, name='request-list'),
    path('requests/new/', views.create_request_view, name='request-create'),
    path('requests/<int:pk>/accept/', views.accept_request_view, name='request-accept'),
    path('requests/<int:pk>/reject/', views.reject_request_view, name='request-reject'),
    path('requests/<int:pk>/cancel/', views.cancel_request_view, name='request-cancel'),
    path('requests/<int:pk>/complete/', views.complete_request_view, name='request-complete'),
    path('history/', views.donation_history_view, name='donation-history'),
]
