from .customer_service import CustomerService
from .appointment_service import AppointmentService, AppointmentOutcome, is_late_cancellation
from .session_ledger import (
     ConsumeResult,
     RefundResult,
     create_block,
     consume_session,
     activate_next_pending,
     refund_session,
     edit_pending_block,
     delete_block,
     reconcile_stuck_pending,
)
from .maintenance_service import reconcile_all, reconcile_customer, find_invariant_violations
from .studio_report_service import studio_session_stats, studio_customers_with_sessions

__all__ = [
     "CustomerService",
     "AppointmentService",
     "AppointmentOutcome",
     "is_late_cancellation",
     "ConsumeResult",
     "RefundResult",
     "create_block",
     "consume_session",
     "activate_next_pending",
     "refund_session",
     "edit_pending_block",
     "delete_block",
     "reconcile_stuck_pending",
     "reconcile_all",
     "reconcile_customer",
     "find_invariant_violations",
     "studio_session_stats",
     "studio_customers_with_sessions",
]
