"""
Appointment booking for the Craftsman Phone Assistant
"""

from .appointment_service import AppointmentServiceClient, BookingRequest, BookingResult
from .finalizer import AppointmentFinalizer, create_appointment_finalizer

__all__ = [
    "AppointmentServiceClient",
    "BookingRequest",
    "BookingResult",
    "AppointmentFinalizer",
    "create_appointment_finalizer",
]
