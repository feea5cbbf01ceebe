"""
Pydantic schemas for the maintenance endpoints.
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class ReconcileRequest(BaseModel):
     """Reconcile one customer, one studio, or (managers only) everything."""
     customer_id: Optional[int] = Field(None, gt=0)
     studio_id: Optional[int] = Field(None, gt=0)


class ReconcileResponse(BaseModel):
     activated_block_ids: List[int]
     message: str


class MultipleActiveEntry(BaseModel):
     customer_id: int
     active_blocks: int


class ViolationsResponse(BaseModel):
     multiple_active: List[MultipleActiveEntry]
     stuck_pending: List[int]
