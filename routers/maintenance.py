# routers/maintenance.py
"""
Maintenance routes for the session block invariants.

Reconciliation promotes the oldest pending block of customers left without
an active block. It is idempotent, so it can be triggered by hand or cron.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from auth import get_accessible_customer, owned_studio_id, require_staff
from database import get_session
from services import maintenance_service
from schemas.maintenance import ReconcileRequest, ReconcileResponse, ViolationsResponse

router = APIRouter(prefix="/api/maintenance", tags=["maintenance"])


@router.post("/reconcile", response_model=ReconcileResponse, summary="Activate stuck pending blocks")
def reconcile(
     body: ReconcileRequest,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     """
     - **customer_id**: reconcile one customer
     - **studio_id**: reconcile one studio (studio owners are always limited to their own)
     - neither: every studio, managers only
     """
     owner_studio_id = owned_studio_id(db, token)
     acting_user_id = token.get("id")

     if body.customer_id is not None:
          get_accessible_customer(db, token, body.customer_id)
          block_id = maintenance_service.reconcile_customer(db, body.customer_id, acting_user_id)
          activated = [block_id] if block_id is not None else []
     else:
          studio_id = owner_studio_id or body.studio_id
          if owner_studio_id is not None and body.studio_id not in (None, owner_studio_id):
               raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Access denied"
               )
          activated = maintenance_service.reconcile_all(db, studio_id, acting_user_id)

     return ReconcileResponse(
          activated_block_ids=activated,
          message=f"Activated {len(activated)} pending block(s)",
     )


@router.get("/violations", response_model=ViolationsResponse, summary="Audit session block invariants")
def violations(
     studio_id: Optional[int] = Query(None, gt=0),
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     scope = owned_studio_id(db, token) or studio_id
     return ViolationsResponse(**maintenance_service.find_invariant_violations(db, scope))
