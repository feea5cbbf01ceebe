"""
Pydantic schemas for studio-level session reports.
"""
from datetime import date
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class TransactionTypeStats(BaseModel):
     count: int
     sessions: int


class StudioSessionStats(BaseModel):
     """Session movements in a period plus the studio's current balances."""
     studio_id: int
     from_date: date
     to_date: date
     total_transactions: int
     transactions: Dict[str, TransactionTypeStats]
     purchases: int
     deductions: int
     refunds: int
     sessions_added: int
     sessions_deducted: int
     sessions_refunded: int
     sessions_removed: int
     active_blocks: int
     total_remaining_sessions: int
     pending_blocks: int
     pending_sessions: int

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "studio_id": 1,
                    "from_date": "2026-09-18",
                    "to_date": "2026-10-18",
                    "total_transactions": 3,
                    "transactions": {
                         "purchase": {"count": 1, "sessions": 20},
                         "deduction": {"count": 2, "sessions": -2}
                    },
                    "purchases": 1,
                    "deductions": 2,
                    "refunds": 0,
                    "sessions_added": 20,
                    "sessions_deducted": 2,
                    "sessions_refunded": 0,
                    "sessions_removed": 0,
                    "active_blocks": 1,
                    "total_remaining_sessions": 18,
                    "pending_blocks": 0,
                    "pending_sessions": 0
               }
          }
     )


class StudioCustomerSessions(BaseModel):
     customer_id: int
     first_name: str
     last_name: str
     phone: str
     email: Optional[str] = None
     registration_code: Optional[str] = None
     active_block_id: Optional[int] = None
     total_sessions: Optional[int] = None
     remaining_sessions: int
     pending_sessions: int
     has_active_sessions: bool


class StudioCustomersResponse(BaseModel):
     customers: List[StudioCustomerSessions]
