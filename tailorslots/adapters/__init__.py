"""
Adapters layer - Persisted documents and file storage.
"""

from .documents import AppointmentDocument, TravelLocationDocument
from .json_store import JsonScheduleRepository

__all__ = ["AppointmentDocument", "TravelLocationDocument", "JsonScheduleRepository"]
