from django.urls import path
from . import views

app_name = 'bookings'

urlpatterns = [
    # Customer APIs
    path('', views.bookings, name='bookings'),

    # Provider Job Actions
    path('<str:booking_id>/accept/', views.accept_booking, name='accept-booking'),
    path('<str:booking_id>/status/', views.update_booking_status, name='update-booking-status'),
]
