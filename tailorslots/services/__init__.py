"""
Service layer helpers that orchestrate the domain components.
"""

from .booking import BookingService

__all__ = ["BookingService"]
