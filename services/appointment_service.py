"""
Appointment Service - turns appointment outcomes into session consumption.

This is the only caller of session_ledger.consume_session for appointments.
It deducts one session when an appointment that consumes sessions reaches a
terminal outcome (completed, no-show, late cancellation) and flips
``Appointment.session_consumed`` in the same transaction, so repeated status
changes never deduct twice.
"""
import enum
import logging
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

import config
from models import Appointment, AppointmentStatus
from services import session_ledger
from services.errors import AppointmentNotFound, InvalidOutcome, SessionLedgerError

logger = logging.getLogger(__name__)


class AppointmentOutcome(str, enum.Enum):
     COMPLETED = "completed"
     NO_SHOW = "no_show"
     CANCELLED_LATE = "cancelled_late"
     CANCELLED = "cancelled"


# Outcome -> stored appointment status
OUTCOME_STATUS = {
     AppointmentOutcome.COMPLETED: AppointmentStatus.COMPLETED,
     AppointmentOutcome.NO_SHOW: AppointmentStatus.NO_SHOW,
     AppointmentOutcome.CANCELLED_LATE: AppointmentStatus.CANCELLED,
     AppointmentOutcome.CANCELLED: AppointmentStatus.CANCELLED,
}

CONSUMING_OUTCOMES = {
     AppointmentOutcome.COMPLETED,
     AppointmentOutcome.NO_SHOW,
     AppointmentOutcome.CANCELLED_LATE,
}


class OutcomeResult(NamedTuple):
     appointment: Appointment
     session_deducted: bool
     consumption: Optional[session_ledger.ConsumeResult]


def is_late_cancellation(appointment: Appointment, now: Optional[datetime] = None) -> bool:
     """True when cancelling now falls inside the window before the start."""
     now = now or datetime.utcnow()
     window = timedelta(hours=config.LATE_CANCELLATION_HOURS)
     return now > appointment.starts_at - window


class AppointmentService:
     """Service class for appointment outcome handling."""

     @staticmethod
     def apply_outcome(
          db: Session,
          appointment_id: int,
          outcome: AppointmentOutcome,
          acting_user_id: Optional[int] = None,
     ) -> OutcomeResult:
          """
          Record a terminal outcome and consume a session if it qualifies.

          A session is consumed when the outcome is completed, no_show or
          cancelled_late, the appointment type consumes sessions, and no
          session has been consumed for this appointment yet.

          Raises:
               AppointmentNotFound: no such appointment
               InvalidOutcome: appointment already cancelled
               NoActiveSessions: the customer has nothing left to consume
          """
          appointment = (
               db.query(Appointment)
               .filter(Appointment.id == appointment_id)
               .with_for_update()
               .first()
          )
          if not appointment:
               raise AppointmentNotFound(appointment_id)

          outcome = AppointmentOutcome(outcome)
          if appointment.status == AppointmentStatus.CANCELLED and outcome != AppointmentOutcome.CANCELLED:
               raise InvalidOutcome(appointment.id, appointment.status.value, outcome.value)

          appointment.status = OUTCOME_STATUS[outcome]

          consumption = None
          if (
               outcome in CONSUMING_OUTCOMES
               and appointment.consumes_session
               and not appointment.session_consumed
          ):
               consumption = session_ledger.consume_session(
                    db,
                    appointment.customer_id,
                    1,
                    appointment_id=appointment.id,
                    created_by_user_id=acting_user_id,
                    notes=f"Session deducted for {outcome.value.replace('_', ' ')} appointment",
               )
               appointment.session_consumed = True

          db.flush()
          logger.info(
               "Appointment %s -> %s (session deducted: %s)",
               appointment.id, appointment.status.value, consumption is not None,
          )
          return OutcomeResult(appointment, consumption is not None, consumption)

     @staticmethod
     def cancel(
          db: Session,
          appointment_id: int,
          acting_user_id: Optional[int] = None,
          now: Optional[datetime] = None,
     ) -> OutcomeResult:
          """
          Cancel an appointment, as a late cancellation when inside the window.
          Cancelling an already cancelled appointment changes nothing.
          """
          appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
          if not appointment:
               raise AppointmentNotFound(appointment_id)
          if appointment.status == AppointmentStatus.CANCELLED:
               return OutcomeResult(appointment, False, None)

          outcome = (
               AppointmentOutcome.CANCELLED_LATE
               if is_late_cancellation(appointment, now)
               else AppointmentOutcome.CANCELLED
          )
          return AppointmentService.apply_outcome(db, appointment_id, outcome, acting_user_id)

     @staticmethod
     def complete_past_appointments(
          db: Session,
          now: Optional[datetime] = None,
          studio_id: Optional[int] = None,
     ) -> dict:
          """
          Mark confirmed appointments whose end time has passed as completed.

          This should be called by a scheduled job. Each appointment runs in
          its own savepoint: one customer without sessions left does not stop
          the rest of the batch, their appointment stays confirmed.

          Returns:
               Dictionary with completed / deducted / failed counts
          """
          now = now or datetime.utcnow()

          query = db.query(Appointment).filter(
               Appointment.status == AppointmentStatus.CONFIRMED,
               Appointment.appointment_date <= now.date(),
          )
          if studio_id:
               query = query.filter(Appointment.studio_id == studio_id)

          candidates = [a for a in query.order_by(Appointment.id).all() if a.ends_at < now]

          completed = 0
          deducted = 0
          failed = []
          for appointment in candidates:
               savepoint = db.begin_nested()
               try:
                    result = AppointmentService.apply_outcome(
                         db, appointment.id, AppointmentOutcome.COMPLETED,
                         acting_user_id=appointment.created_by_user_id,
                    )
                    savepoint.commit()
               except SessionLedgerError as exc:
                    savepoint.rollback()
                    logger.warning(
                         "Could not complete appointment %s: %s", appointment.id, exc.message
                    )
                    failed.append(appointment.id)
                    continue
               completed += 1
               if result.session_deducted:
                    deducted += 1

          logger.info(
               "Completed %s past appointments, deducted %s sessions, %s failed",
               completed, deducted, len(failed),
          )
          return {"completed": completed, "sessions_deducted": deducted, "failed": failed}
