import enum
from datetime import datetime

from sqlalchemy import Column, Integer, Date, Time, Boolean, DateTime, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
from .base import Base


class AppointmentStatus(str, enum.Enum):
     """Appointment states as stored by the scheduling side."""
     PENDING = "pending"
     CONFIRMED = "confirmed"
     CANCELLED = "cancelled"
     COMPLETED = "completed"
     NO_SHOW = "no_show"


class Appointment(Base):
     """
     Appointment model - referenced, not owned, by the session ledger.

     Only the columns needed to react to terminal outcomes are mapped.
     ``session_consumed`` guarantees a session is deducted at most once per
     appointment no matter how often its status is changed.
     """

     id = Column(Integer, primary_key=True, autoincrement=True)
     studio_id = Column(
          Integer,
          ForeignKey("studios.id", ondelete="NO ACTION"),
          nullable=False,
          index=True
     )
     customer_id = Column(
          Integer,
          ForeignKey("customers.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )

     appointment_date = Column(Date, nullable=False, index=True)
     start_time = Column(Time, nullable=False)
     end_time = Column(Time, nullable=False)
     status = Column(
          Enum(
               AppointmentStatus,
               name="appointment_status",
               create_constraint=True,
               values_callable=lambda statuses: [s.value for s in statuses],
          ),
          default=AppointmentStatus.CONFIRMED,
          nullable=False,
          index=True
     )

     # Copied from the appointment type at booking time
     consumes_session = Column(Boolean, default=True, nullable=False)
     session_consumed = Column(Boolean, default=False, nullable=False)

     created_by_user_id = Column(Integer, nullable=True)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

     # Relationships
     customer = relationship("Customer", back_populates="appointments")

     def __repr__(self):
          return f"<Appointment(id={self.id}, customer_id={self.customer_id}, status='{self.status.value}')>"

     @property
     def starts_at(self) -> datetime:
          return datetime.combine(self.appointment_date, self.start_time)

     @property
     def ends_at(self) -> datetime:
          return datetime.combine(self.appointment_date, self.end_time)
