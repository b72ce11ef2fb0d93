"""
Services package for the EPG Changes Tracker

This package contains all business logic and service layer components.
"""
from app.services.storage_service import PersistentStore, RecordNotFoundError, create_backend
from app.services.analytics_service import compute_analytics
from app.services.bulk_import_service import parse_bulk_text
from app.services.notification_service import compose_email

__all__ = [
    'PersistentStore',
    'RecordNotFoundError',
    'create_backend',
    'compute_analytics',
    'parse_bulk_text',
    'compose_email',
]
