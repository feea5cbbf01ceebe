"""
Business-rule errors raised by the session ledger and the services around it.

Each error names the rule that was violated; the message is shown to studio
owners as-is, so it has to say what to do next. They subclass ValueError so
callers that only care about "rejected input" can keep catching ValueError.
"""


class SessionLedgerError(ValueError):
     """Base class. ``code`` is the stable machine-readable kind."""

     code = "session_ledger_error"
     status_code = 400

     def __init__(self, message: str):
          super().__init__(message)
          self.message = message


class InvalidPackSize(SessionLedgerError):
     code = "invalid_pack_size"

     def __init__(self, total_sessions: int, allowed):
          allowed_text = ", ".join(str(size) for size in allowed)
          super().__init__(
               f"Session package of {total_sessions} is not offered. Must be one of: {allowed_text}"
          )
          self.total_sessions = total_sessions
          self.allowed = tuple(allowed)


class InvalidSessionCount(SessionLedgerError):
     code = "invalid_session_count"

     def __init__(self, count: int):
          super().__init__(f"Session count must be at least 1, got {count}")


class NoActiveSessions(SessionLedgerError):
     code = "no_active_sessions"

     def __init__(self, customer_id: int, requested: int, available: int = 0, has_active: bool = False):
          if not has_active:
               message = (
                    f"Customer {customer_id} has no active session block. "
                    "Pending blocks cannot be consumed until they are activated."
               )
          else:
               message = (
                    f"Only {available} session(s) remaining in the active block "
                    f"of customer {customer_id}, {requested} requested"
               )
          super().__init__(message)
          self.customer_id = customer_id
          self.requested = requested
          self.available = available


class NoTargetBlock(SessionLedgerError):
     code = "no_target_block"
     status_code = 404

     def __init__(self, customer_id: int, block_id: int = None):
          if block_id is None:
               message = f"No active session block found for refund (customer {customer_id})"
          else:
               message = f"Session block {block_id} not found for refund (customer {customer_id})"
          super().__init__(message)


class BlockNotFound(SessionLedgerError):
     code = "block_not_found"
     status_code = 404

     def __init__(self, block_id: int):
          super().__init__(f"Session block {block_id} not found")
          self.block_id = block_id


class CustomerNotFound(SessionLedgerError):
     code = "customer_not_found"
     status_code = 404

     def __init__(self, customer_id: int, studio_id: int = None):
          if studio_id is None:
               message = f"Customer {customer_id} not found"
          else:
               message = f"Customer {customer_id} not found for studio {studio_id}"
          super().__init__(message)


class NotPending(SessionLedgerError):
     code = "not_pending"

     def __init__(self, block_id: int, status: str):
          super().__init__(
               f"Can only edit pending session blocks. Block {block_id} is {status}"
          )


class Downgrade(SessionLedgerError):
     code = "downgrade"

     def __init__(self, current_total: int, requested_total: int):
          super().__init__(
               f"Cannot downgrade from {current_total} to {requested_total} sessions"
          )


class HasConsumption(SessionLedgerError):
     code = "has_consumption"

     def __init__(self, block_id: int, used: int):
          super().__init__(
               f"Cannot delete block {block_id} with used sessions. "
               f"{used} session(s) have already been consumed."
          )


class PendingBlockExists(SessionLedgerError):
     code = "pending_block_exists"

     def __init__(self, customer_id: int):
          super().__init__(
               f"Customer {customer_id} already has a pending session block. "
               "Cannot add another block until the pending one is used."
          )


class MultipleActiveBlocks(SessionLedgerError):
     code = "multiple_active_blocks"
     status_code = 409

     def __init__(self, customer_id: int, active_block_id: int):
          super().__init__(
               f"Customer {customer_id} still has active block {active_block_id}; "
               "it must complete before another block is activated"
          )


class RefundWouldDuplicateActive(SessionLedgerError):
     code = "refund_would_duplicate_active"
     status_code = 409

     def __init__(self, block_id: int, active_block_id: int):
          super().__init__(
               f"Refunding completed block {block_id} would reactivate it while block "
               f"{active_block_id} is active. Refund to the active block instead."
          )


class DuplicateCustomer(SessionLedgerError):
     code = "duplicate_customer"
     status_code = 409

     def __init__(self, phone: str):
          super().__init__(f"Customer with phone number {phone} already exists")


class CustomerHasSessions(SessionLedgerError):
     code = "customer_has_sessions"

     def __init__(self, open_blocks: int):
          super().__init__(
               "Cannot delete customer with active or pending session blocks. "
               f"Please consume or refund all sessions first ({open_blocks} open block(s))."
          )


class CustomerHasAppointments(SessionLedgerError):
     code = "customer_has_appointments"

     def __init__(self, upcoming: int):
          super().__init__(
               "Cannot delete customer with upcoming appointments. "
               f"Please cancel all future appointments first ({upcoming} upcoming)."
          )


class StudioNotFound(SessionLedgerError):
     code = "studio_not_found"
     status_code = 404

     def __init__(self, studio_id: int):
          super().__init__(f"Studio {studio_id} not found")


class AppointmentNotFound(SessionLedgerError):
     code = "appointment_not_found"
     status_code = 404

     def __init__(self, appointment_id: int):
          super().__init__(f"Appointment {appointment_id} not found")


class InvalidOutcome(SessionLedgerError):
     code = "invalid_outcome"

     def __init__(self, appointment_id: int, current_status: str, outcome: str):
          super().__init__(
               f"Appointment {appointment_id} is {current_status}; cannot record outcome '{outcome}'"
          )


class InvalidDateRange(SessionLedgerError):
     code = "invalid_date_range"

     def __init__(self, from_date, to_date):
          super().__init__(f"from_date {from_date} is after to_date {to_date}")
