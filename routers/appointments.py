# routers/appointments.py
"""
Appointment outcome routes.

Scheduling itself lives elsewhere; these routes only record terminal
outcomes and let the appointment service deduct sessions exactly once.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auth import owned_studio_id, require_staff
from database import get_session
from models import Appointment
from services.appointment_service import AppointmentOutcome, AppointmentService
from schemas.appointment import (
     AppointmentOutcomeEnum,
     AppointmentOutcomeRequest,
     AppointmentOutcomeResponse,
     CompletePastRequest,
     CompletePastResponse,
)

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


@router.patch(
     "/{appointment_id}/outcome",
     response_model=AppointmentOutcomeResponse,
     summary="Record an appointment outcome"
)
def record_outcome(
     appointment_id: int,
     body: AppointmentOutcomeRequest,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     """
     - **completed**, **no_show**, **cancelled_late**: deduct one session
       (if the appointment type consumes sessions and none was deducted yet)
     - **cancelled**: no deduction, unless it is inside the late-cancellation window
     """
     appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
     studio_id = owned_studio_id(db, token)
     if not appointment or (studio_id is not None and appointment.studio_id != studio_id):
          raise HTTPException(
               status_code=status.HTTP_404_NOT_FOUND,
               detail=f"Appointment with ID {appointment_id} not found"
          )

     if body.outcome == AppointmentOutcomeEnum.CANCELLED:
          result = AppointmentService.cancel(db, appointment_id, acting_user_id=token.get("id"))
     else:
          result = AppointmentService.apply_outcome(
               db, appointment_id, AppointmentOutcome(body.outcome.value), acting_user_id=token.get("id")
          )

     consumption = result.consumption
     return AppointmentOutcomeResponse(
          appointment_id=result.appointment.id,
          status=result.appointment.status.value,
          session_deducted=result.session_deducted,
          remaining_sessions=consumption.remaining if consumption else None,
          activated_block_id=consumption.activated_block_id if consumption else None,
     )


@router.post(
     "/complete-past",
     response_model=CompletePastResponse,
     summary="Complete confirmed appointments that have ended"
)
def complete_past(
     body: CompletePastRequest,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     studio_id = owned_studio_id(db, token) or body.studio_id
     result = AppointmentService.complete_past_appointments(
          db, now=body.now or datetime.utcnow(), studio_id=studio_id
     )
     return CompletePastResponse(**result)
