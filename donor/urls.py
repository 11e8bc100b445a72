from django.urls import path
from . import views

urlpatterns = [
    path('search/', views.donor_search_view, name='donor-search'),
    path('<int:pk>/eligibility/', views.donor_eligibility_view, name='donor-eligibility'),
]
