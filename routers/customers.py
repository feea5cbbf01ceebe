# routers/customers.py
"""
Customer onboarding routes.

POST creates the customer and their first session block in one transaction;
DELETE removes a customer who has no open sessions and no upcoming appointments.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auth import get_accessible_customer, owned_studio_id, require_staff
from database import get_session
from services.customer_service import CustomerService
from schemas.customer import CustomerCreate, CustomerCreatedResponse, CustomerResponse
from routers.session_blocks import build_block_response

router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.post(
     "",
     response_model=CustomerCreatedResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Create a customer with a session package"
)
def create_customer(
     body: CustomerCreate,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     """
     Create a new customer for a studio.

     - **session_package**: size of the first block, which starts active
     - **studio_id**: only needed (and only honoured) for managers
     """
     studio_id = owned_studio_id(db, token) or body.studio_id
     if studio_id is None:
          raise HTTPException(
               status_code=status.HTTP_400_BAD_REQUEST,
               detail="studio_id is required"
          )

     customer, block = CustomerService.create_customer_with_package(
          db,
          studio_id=studio_id,
          first_name=body.first_name,
          last_name=body.last_name,
          phone=body.phone,
          email=body.email,
          session_package=body.session_package,
          payment_method=body.payment_method,
          notes=body.notes,
          created_by_user_id=token.get("id"),
     )

     return CustomerCreatedResponse(
          message=f"Customer created with {body.session_package} sessions",
          customer=CustomerResponse(
               id=customer.id,
               studio_id=customer.studio_id,
               name=customer.full_name,
               phone=customer.contact_phone,
               email=customer.contact_email,
               registration_code=customer.registration_code,
               customer_since=customer.customer_since,
          ),
          session_block=build_block_response(block),
          instructions=f"Customer can register on app with code: {customer.registration_code}",
     )


@router.delete("/{customer_id}", summary="Delete a customer")
def delete_customer(
     customer_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     get_accessible_customer(db, token, customer_id)
     customer = CustomerService.delete_customer(db, customer_id)
     return {
          "message": "Customer successfully deleted",
          "customer_id": customer_id,
          "customer_name": customer.full_name,
     }
