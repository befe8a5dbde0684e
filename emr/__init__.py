"""Clinic EMR application.

This package contains models, serializers, services, views and route
registrations for patient registration, scheduling, billing, queues and
clinical notes.
"""
