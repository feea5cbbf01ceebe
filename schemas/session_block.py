"""
Pydantic schemas for session block API request/response validation.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict


class SessionBlockStatusEnum(str, Enum):
     """Session block lifecycle states."""
     ACTIVE = "active"
     PENDING = "pending"
     COMPLETED = "completed"
     CANCELLED = "cancelled"


class SessionBlockCreate(BaseModel):
     """Schema for selling a new block to an existing customer."""
     total_sessions: int = Field(..., gt=0, description="Pack size (one of the offered sizes)")
     payment_method: Optional[str] = Field(None, max_length=50, description="cash, card, transfer ...")
     notes: Optional[str] = Field(None, max_length=2000)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "total_sessions": 20,
                    "payment_method": "cash",
                    "notes": "Paid at reception"
               }
          }
     )


class SessionBlockUpdate(BaseModel):
     """Schema for upgrading a pending block."""
     total_sessions: int = Field(..., gt=0, description="New pack size (never smaller)")
     payment_method: Optional[str] = Field(None, max_length=50)
     notes: Optional[str] = Field(None, max_length=2000)


class SessionBlockResponse(BaseModel):
     """Schema for session block response."""
     id: int
     customer_id: int
     studio_id: int
     total_sessions: int
     remaining_sessions: int
     used_sessions: int
     status: SessionBlockStatusEnum
     activation_date: Optional[datetime] = None
     purchase_date: datetime
     payment_method: str
     notes: Optional[str] = None

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "id": 12,
                    "customer_id": 7,
                    "studio_id": 1,
                    "total_sessions": 20,
                    "remaining_sessions": 14,
                    "used_sessions": 6,
                    "status": "active",
                    "activation_date": "2026-01-31T10:30:00",
                    "purchase_date": "2026-01-31T10:30:00",
                    "payment_method": "cash",
                    "notes": None
               }
          }
     )


class SessionSummary(BaseModel):
     customer_id: int
     active_block_id: Optional[int] = None
     active_sessions: int
     pending_sessions: int
     pending_blocks: int
     remaining_sessions: int
     total_sessions_purchased: int
     has_active_sessions: bool


class SessionBlockListResponse(BaseModel):
     """Blocks of one customer, active first, then pending in activation order."""
     blocks: List[SessionBlockResponse]
     summary: SessionSummary


class ConsumeRequest(BaseModel):
     sessions_to_consume: int = Field(1, ge=1, description="Sessions to draw from the active block")
     reason: Optional[str] = Field(None, max_length=500)


class ConsumeResponse(BaseModel):
     block_id: int
     remaining_in_block: int
     consumed: int
     block_completed: bool
     activated_block_id: Optional[int] = None
     message: str


class RefundRequest(BaseModel):
     sessions_to_refund: int = Field(..., ge=1)
     block_id: Optional[int] = Field(None, gt=0, description="Defaults to the active block")
     reason: Optional[str] = Field(None, max_length=500)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "sessions_to_refund": 1,
                    "reason": "Studio closed unexpectedly"
               }
          }
     )


class RefundResponse(BaseModel):
     block_id: int
     new_remaining: int
     refunded: int
     status: SessionBlockStatusEnum
     message: str


class DeleteBlockResponse(BaseModel):
     block_id: int
     refunded_sessions: int
     message: str


class SessionTransactionResponse(BaseModel):
     id: int
     session_block_id: int
     transaction_type: str
     amount: int
     appointment_id: Optional[int] = None
     created_by_user_id: Optional[int] = None
     notes: Optional[str] = None
     created_at: datetime

     model_config = ConfigDict(from_attributes=True)
