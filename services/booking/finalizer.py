"""
=====================================================
Craftsman Phone Assistant - Appointment Finalizer
=====================================================
Turns a complete slot state into a booked appointment.
"""

import asyncio
from typing import Optional
from loguru import logger

from config.settings import ConfigurationError
from services.conversation.session import CallSession, CallStage
from .appointment_service import AppointmentServiceClient, BookingRequest, BookingResult


class AppointmentFinalizer:
    """
    Books the appointment for a call once all required fields are known

    On success the session is marked booked and moves to finalizing.
    On failure nothing changes, so a later turn can retry.
    """

    def __init__(self, client: AppointmentServiceClient, timeout: float = 10.0):
        self.client = client
        self.timeout = timeout

    async def finalize(self, session: CallSession) -> BookingResult:
        """
        Create the appointment for a session

        Args:
            session: Call whose slot state is complete

        Returns:
            BookingResult of the attempt
        """
        if session.slot_state.appointment_complete:
            logger.info(f"Finalizer: Session {session.session_id} already booked, skipping")
            return BookingResult(success=True, appointment_id=session.slot_state.appointment_id)

        request = BookingRequest.from_slot_state(
            session.slot_state,
            craftsman_id=session.craftsman_id,
            caller_phone_number=session.caller_phone_number,
        )

        try:
            result = await asyncio.wait_for(self.client.create_appointment(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Finalizer: Appointment service timed out after {self.timeout}s")
            result = BookingResult(success=False, error_message="timeout")

        if not result.success:
            logger.warning(
                f"Finalizer: Booking failed for session {session.session_id}: {result.error_message}"
            )
            return result

        session.slot_state.appointment_complete = True
        session.slot_state.appointment_id = result.appointment_id
        session.advance(CallStage.FINALIZING)
        return result

    async def complete(self, session: CallSession) -> None:
        """Post-creation step run when a booked call ends"""
        logger.info(
            f"Finalizer: Appointment finalized id={session.slot_state.appointment_id} "
            f"session={session.session_id} craftsman={session.craftsman_id}"
        )

    async def close(self) -> None:
        await self.client.close()


def create_appointment_finalizer(config: dict) -> AppointmentFinalizer:
    """
    Factory function to create the finalizer from config

    Raises:
        ConfigurationError: If the appointment service URL is missing
    """
    url: Optional[str] = config.get('appointment_service_url')
    if not url:
        raise ConfigurationError("APPOINTMENT_SERVICE_URL is required for booking")

    timeout = config.get('appointment_timeout_seconds', 10.0)
    client = AppointmentServiceClient(
        url=url,
        api_key=config.get('appointment_service_api_key', ''),
        timeout=timeout,
    )
    return AppointmentFinalizer(client, timeout=timeout)
