"""
Pydantic schemas for appointment outcome endpoints.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class AppointmentOutcomeEnum(str, Enum):
     COMPLETED = "completed"
     NO_SHOW = "no_show"
     CANCELLED_LATE = "cancelled_late"
     CANCELLED = "cancelled"


class AppointmentOutcomeRequest(BaseModel):
     """
     Outcome of an appointment. Plain ``cancelled`` is classified as late
     automatically when it falls inside the late-cancellation window.
     """
     outcome: AppointmentOutcomeEnum


class AppointmentOutcomeResponse(BaseModel):
     appointment_id: int
     status: str
     session_deducted: bool
     remaining_sessions: Optional[int] = None
     activated_block_id: Optional[int] = None


class CompletePastRequest(BaseModel):
     studio_id: Optional[int] = Field(None, gt=0)
     now: Optional[datetime] = Field(None, description="Reference time, defaults to the server clock")


class CompletePastResponse(BaseModel):
     completed: int
     sessions_deducted: int
     failed: List[int]
