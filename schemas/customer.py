"""
Pydantic schemas for customer onboarding.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from .session_block import SessionBlockResponse


class CustomerCreate(BaseModel):
     """A new customer always buys a first package."""
     studio_id: Optional[int] = Field(None, gt=0, description="Required for managers; studio owners use their own studio")
     first_name: str = Field(..., min_length=1, max_length=100)
     last_name: str = Field(..., min_length=1, max_length=100)
     phone: str = Field(..., min_length=3, max_length=50)
     email: Optional[str] = Field(None, max_length=255)
     session_package: int = Field(..., gt=0, description="Size of the first session block")
     payment_method: Optional[str] = Field(None, max_length=50)
     notes: Optional[str] = Field(None, max_length=2000)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "first_name": "Anna",
                    "last_name": "Keller",
                    "phone": "+49 170 1234567",
                    "email": "anna@example.com",
                    "session_package": 10,
                    "payment_method": "card"
               }
          }
     )


class CustomerResponse(BaseModel):
     id: int
     studio_id: int
     name: str
     phone: str
     email: Optional[str] = None
     registration_code: Optional[str] = None
     customer_since: Optional[datetime] = None


class CustomerCreatedResponse(BaseModel):
     message: str
     customer: CustomerResponse
     session_block: SessionBlockResponse
     instructions: str
