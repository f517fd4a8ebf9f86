"""
=====================================================
Craftsman Phone Assistant - Appointment Service Client
=====================================================
Creates appointments through the appointment-creation HTTP service.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from loguru import logger
import httpx

from services.conversation.slot_state import SlotState


@dataclass
class BookingRequest:
    """Payload for one appointment creation attempt"""
    craftsman_id: Optional[str]
    phone_number: Optional[str]  # Caller id of the phone leg
    customer_name: Optional[str] = None
    contact_phone: Optional[str] = None  # Number the caller gave in conversation
    service_type: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    preferred_date: Optional[str] = None
    preferred_time: Optional[str] = None
    urgency: str = "normal"

    @classmethod
    def from_slot_state(
        cls,
        slot_state: SlotState,
        craftsman_id: Optional[str],
        caller_phone_number: Optional[str]
    ) -> "BookingRequest":
        """Build a request from collected slots and call identity"""
        return cls(
            craftsman_id=craftsman_id,
            phone_number=caller_phone_number,
            customer_name=slot_state.customer_name,
            contact_phone=slot_state.phone_number,
            service_type=slot_state.service_type,
            description=slot_state.description,
            address=slot_state.address,
            preferred_date=slot_state.preferred_date,
            preferred_time=slot_state.preferred_time,
            urgency=slot_state.urgency or "normal",
        )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the appointment service's JSON body"""
        appointment_data = {
            "customerName": self.customer_name,
            "phoneNumber": self.contact_phone or self.phone_number,
            "serviceType": self.service_type,
            "description": self.description,
            "address": self.address,
            "preferredDate": self.preferred_date,
            "preferredTime": self.preferred_time,
            "urgency": self.urgency,
        }
        return {
            "appointmentData": appointment_data,
            "craftsmanId": self.craftsman_id,
            "phoneNumber": self.phone_number,
        }


@dataclass
class BookingResult:
    """Booking result"""
    success: bool
    appointment_id: Optional[str] = None
    status: Optional[str] = None
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class AppointmentServiceClient:
    """
    HTTP client for the appointment-creation service

    POST {appointmentData, craftsmanId, phoneNumber} -> {success, appointmentId?, error?}
    """

    def __init__(self, url: str, api_key: str = "", timeout: float = 10.0):
        """
        Initialize appointment client

        Args:
            url: Appointment creation endpoint
            api_key: Optional bearer token
            timeout: Request timeout in seconds
        """
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def create_appointment(self, request: BookingRequest) -> BookingResult:
        """
        Create an appointment

        Never raises: transport errors and error responses become a failed result.

        Args:
            request: Booking request

        Returns:
            BookingResult
        """
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = await self._get_client().post(self.url, json=request.to_payload(), headers=headers)
        except Exception as e:
            logger.error(f"Booking: Appointment service unreachable: {e!r}")
            return BookingResult(success=False, error_message=str(e) or type(e).__name__)

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.is_success and data.get("success"):
            appointment_id = data.get("appointmentId")
            logger.info(f"Booking: Appointment created id={appointment_id} craftsman={request.craftsman_id}")
            return BookingResult(
                success=True,
                appointment_id=str(appointment_id) if appointment_id is not None else None,
                status=data.get("status"),
            )

        error = data.get("error") or f"HTTP {response.status_code}"
        logger.warning(f"Booking: Appointment creation failed: {error}")
        return BookingResult(success=False, error_message=error)

    async def close(self) -> None:
        """Close the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
