"""
URL configuration for the InfoCare ward records backend.

The `urlpatterns` list routes URLs to views.  This module includes
both the Django admin and the API routes provided by the ward app.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    # Django admin site (useful for development)
    path('admin/', admin.site.urls),
    # Include API routes from the ward app
    path('', include('ward.routers')),
]
