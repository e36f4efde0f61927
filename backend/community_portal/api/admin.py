"""Admin verification endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from community_portal.api.deps import get_db, require_roles
from community_portal.models.user import User, UserRole, UserStatus
from community_portal.schemas.admin import VerificationDecision
from community_portal.schemas.auth import UserSummary, UserUpdateResponse
from community_portal.services.tokens import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

require_admin = require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)


@router.get("/verifications", response_model=list[UserSummary])
def list_verifications(
    status_filter: str = Query("PENDING", alias="status"),
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    """List accounts by verification status."""
    if status_filter not in {s.value for s in UserStatus}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown status")

    return (
        db.query(User)
        .filter(User.status == status_filter)
        .order_by(User.created_at.desc())
        .all()
    )


@router.post("/verifications", response_model=UserUpdateResponse)
def decide_verification(
    decision: VerificationDecision,
    db: Session = Depends(get_db),
    requester: Identity = Depends(require_admin),
):
    """Approve or reject a pending account."""
    user = db.get(User, decision.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if decision.action == "APPROVE":
        user.status = UserStatus.APPROVED.value
        user.rejection_reason = None
        user.approved_by_id = requester.subject_id
        # Approval grants residency; it never demotes an admin
        if user.role == UserRole.GUEST.value:
            user.role = UserRole.RESIDENT.value
        message = "User approved"
    else:
        user.status = UserStatus.REJECTED.value
        user.rejection_reason = decision.rejection_reason or "No specific reason provided"
        message = "User rejected"

    db.commit()
    db.refresh(user)
    logger.info(f"{message}: {user.id} by {requester.subject_id}")
    return UserUpdateResponse(message=message, user=UserSummary.model_validate(user))
