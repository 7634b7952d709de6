"""Ward application for the InfoCare backend.

This package contains models, serializers, services, views and route
registrations implementing admissions, progress notes and the family
access-association workflow.
"""
