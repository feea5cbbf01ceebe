from .session_block import (
     SessionBlockCreate,
     SessionBlockUpdate,
     SessionBlockResponse,
     SessionBlockListResponse,
     ConsumeRequest,
     RefundRequest,
)
from .customer import CustomerCreate, CustomerCreatedResponse
from .appointment import AppointmentOutcomeRequest, AppointmentOutcomeResponse
from .maintenance import ReconcileRequest, ReconcileResponse
from .studio import StudioSessionStats, StudioCustomersResponse

__all__ = [
     "SessionBlockCreate",
     "SessionBlockUpdate",
     "SessionBlockResponse",
     "SessionBlockListResponse",
     "ConsumeRequest",
     "RefundRequest",
     "CustomerCreate",
     "CustomerCreatedResponse",
     "AppointmentOutcomeRequest",
     "AppointmentOutcomeResponse",
     "ReconcileRequest",
     "ReconcileResponse",
     "StudioSessionStats",
     "StudioCustomersResponse",
]
