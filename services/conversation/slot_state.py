"""
=====================================================
Craftsman Phone Assistant - Booking Slot State
=====================================================
Typed record of the booking fields collected across conversation turns,
plus the completion check used to decide when to book.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional


# Fields that must be filled before an appointment can be created
REQUIRED_FIELDS = ("customer_name", "phone_number", "service_type", "address")

# Booking fields in the order they are asked for
BOOKING_FIELDS = (
    "customer_name",
    "phone_number",
    "service_type",
    "description",
    "address",
    "preferred_date",
    "preferred_time",
    "urgency",
)

# Wire names used in prompts, booking payloads and call logs
WIRE_NAMES = {
    "customer_name": "customerName",
    "phone_number": "phoneNumber",
    "service_type": "serviceType",
    "description": "description",
    "address": "address",
    "preferred_date": "preferredDate",
    "preferred_time": "preferredTime",
    "urgency": "urgency",
    "appointment_complete": "appointmentComplete",
    "appointment_id": "appointmentId",
}


@dataclass
class SlotState:
    """Booking information gathered so far for one call"""
    customer_name: Optional[str] = None
    phone_number: Optional[str] = None
    service_type: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    preferred_date: Optional[str] = None
    preferred_time: Optional[str] = None
    urgency: Optional[str] = None

    # Derived flags, set by the appointment finalizer
    appointment_complete: bool = False
    appointment_id: Optional[str] = None

    def merge(self, other: "SlotState") -> "SlotState":
        """
        Merge another state on top of this one

        Last write wins per field; a None in `other` never clears a value.

        Args:
            other: State whose non-empty values take precedence

        Returns:
            New merged SlotState
        """
        updates = {}
        for f in fields(self):
            value = getattr(other, f.name)
            if f.name == "appointment_complete":
                if value:
                    updates[f.name] = True
            elif value is not None:
                updates[f.name] = value
        return replace(self, **updates)

    def missing_fields(self) -> list:
        """Required fields that are still empty"""
        return [name for name in REQUIRED_FIELDS if not _has_value(getattr(self, name))]

    def copy(self) -> "SlotState":
        """Independent copy of this state"""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with wire (camelCase) keys"""
        return {WIRE_NAMES[f.name]: getattr(self, f.name) for f in fields(self)}


def _has_value(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def is_complete(slot_state: SlotState) -> bool:
    """
    Check whether all required booking fields are present

    Required: customer name, phone number, service type, address.
    A field counts only if it is a string that is non-empty after trimming.

    Args:
        slot_state: Current slot state

    Returns:
        True if an appointment can be created
    """
    return all(_has_value(getattr(slot_state, name, None)) for name in REQUIRED_FIELDS)
