from .base import Base
from .studio import Studio
from .customer import Customer
from .session_block import SessionBlock, SessionBlockStatus
from .session_transaction import SessionTransaction, SessionTransactionType
from .appointment import Appointment, AppointmentStatus

__all__ = [
     "Base",
     "Studio",
     "Customer",
     "SessionBlock",
     "SessionBlockStatus",
     "SessionTransaction",
     "SessionTransactionType",
     "Appointment",
     "AppointmentStatus",
]
