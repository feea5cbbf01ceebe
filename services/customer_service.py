"""
Customer Service - onboarding and removal of studio customers.

A customer is always created together with their first session block, in
the same transaction: either both rows exist afterwards or neither does.
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models import Appointment, AppointmentStatus, Customer, SessionBlock, SessionBlockStatus, Studio
from services import session_ledger
from services.errors import (
     CustomerHasAppointments,
     CustomerHasSessions,
     CustomerNotFound,
     DuplicateCustomer,
     StudioNotFound,
)

logger = logging.getLogger(__name__)


class CustomerService:
     """Service class for customer-related business logic."""

     @staticmethod
     def create_customer_with_package(
          db: Session,
          studio_id: int,
          first_name: str,
          last_name: str,
          phone: str,
          session_package: int,
          email: Optional[str] = None,
          payment_method: Optional[str] = None,
          notes: Optional[str] = None,
          created_by_user_id: Optional[int] = None,
     ) -> tuple:
          """
          Create a customer and their first (active) session block.

          Args:
               db: SQLAlchemy database session
               studio_id: Studio the customer belongs to
               first_name, last_name, phone, email: Contact details
               session_package: Size of the first block (must be an offered pack size)
               payment_method: How the first block was paid
               notes: Free text stored on the customer

          Returns:
               (Customer, SessionBlock)

          Raises:
               InvalidPackSize: session_package is not offered
               StudioNotFound: studio doesn't exist
               DuplicateCustomer: phone number already used in this studio
          """
          session_ledger.validate_pack_size(session_package)

          studio = db.query(Studio).filter(Studio.id == studio_id).first()
          if not studio:
               raise StudioNotFound(studio_id)

          existing = db.query(Customer).filter(
               Customer.studio_id == studio_id,
               Customer.contact_phone == phone
          ).first()
          if existing:
               raise DuplicateCustomer(phone)

          customer = Customer(
               studio_id=studio_id,
               contact_first_name=first_name,
               contact_last_name=last_name,
               contact_phone=phone,
               contact_email=email,
               acquisition_type="direct_purchase",
               notes=notes,
          )
          db.add(customer)
          db.flush()  # Flush to get the ID without committing

          customer.registration_code = f"{studio.unique_identifier}-{customer.id}"

          block = session_ledger.create_block(
               db,
               customer_id=customer.id,
               studio_id=studio_id,
               total_sessions=session_package,
               payment_method=payment_method,
               notes=f"Initial package of {session_package} sessions",
               created_by_user_id=created_by_user_id,
          )

          logger.info(
               "Created customer %s (%s) with %s sessions",
               customer.id, customer.registration_code, session_package,
          )
          return customer, block

     @staticmethod
     def delete_customer(db: Session, customer_id: int, today: Optional[date] = None) -> Customer:
          """
          Delete a customer who has no open sessions and no upcoming appointments.

          Blocks and appointments go with the customer; the session audit
          trail is kept.

          Raises:
               CustomerNotFound: no such customer
               CustomerHasSessions: an active block, or any block with sessions left
               CustomerHasAppointments: upcoming appointments that aren't cancelled
          """
          today = today or date.today()

          customer = db.query(Customer).filter(Customer.id == customer_id).first()
          if not customer:
               raise CustomerNotFound(customer_id)

          open_blocks = db.query(SessionBlock).filter(
               SessionBlock.customer_id == customer_id,
               or_(
                    SessionBlock.status == SessionBlockStatus.ACTIVE,
                    SessionBlock.remaining_sessions > 0,
               )
          ).count()
          if open_blocks:
               raise CustomerHasSessions(open_blocks)

          upcoming = db.query(Appointment).filter(
               Appointment.customer_id == customer_id,
               Appointment.appointment_date >= today,
               Appointment.status != AppointmentStatus.CANCELLED,
          ).count()
          if upcoming:
               raise CustomerHasAppointments(upcoming)

          db.delete(customer)
          db.flush()

          logger.info("Deleted customer %s (%s)", customer_id, customer.full_name)
          return customer
