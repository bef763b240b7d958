# src/hm_booking/application/schemas.py
from typing import Any

from pydantic import BaseModel, Field

from src.hm_provider.application.service import is_uuid


class CreateWithWalletRequest(BaseModel):
    # Amount, date and time are validated by the service so that bad values
    # map onto the booking error codes instead of a generic 422.
    patient_name: str | None = None
    patient_email: str | None = None
    patient_phone: str | None = None
    patient_id: str | None = None
    doctor_id: Any = None
    doctor_name: str | None = None
    doctor_specialty: str | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None
    notes: str | None = None
    payment_amount: Any = None
    visit_type: str | None = None
    create_ticket: bool = False
    family_member_id: Any = None
    family_member_ids: list[Any] | None = None
    booking_for_name: str | None = None
    family_member_vitals: dict[str, dict[str, Any]] | None = None
    patient_vitals: dict[str, Any] | None = None

    def dependent_ids(self) -> list[str]:
        """UUID-valid dependents in request order; the list wins over the legacy field."""
        if self.family_member_ids:
            return [m.strip().lower() for m in self.family_member_ids if is_uuid(m)]
        legacy = self.family_member_id
        if isinstance(legacy, str) and is_uuid(legacy.strip()):
            return [legacy.strip().lower()]
        return []

    def per_dependent_vitals(self) -> dict[str, dict[str, Any]]:
        if not self.family_member_vitals:
            return {}
        return {key.strip().lower(): value for key, value in self.family_member_vitals.items()}


class CreateWithWalletResponse(BaseModel):
    appointment: dict[str, Any]
    ticket_number: str | None
    balance_after: int | float  # major units, like every amount below


class CancelBookingRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class CancelBookingResponse(BaseModel):
    booking_id: str
    status: str
    cancelled_by: str
    refund_percentage: int
    refund_amount: int | float
    deposit_status: str | None
    balance_after: int | float | None


class RefundPreviewResponse(BaseModel):
    booking_id: str
    deposit_amount: int | float
    refund_percentage: int
    refund_amount: int | float
    hours_until_appointment: float
