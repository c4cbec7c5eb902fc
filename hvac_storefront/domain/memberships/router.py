"""Membership router - dashboard data for the signed-in customer"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import CallerIdentity, get_current_caller
from ...database import get_db
from .schemas import DashboardResponse
from .service import MembershipService

router = APIRouter(prefix="/memberships", tags=["Memberships"])


def get_membership_service(db: Session = Depends(get_db)) -> MembershipService:
    """Dependency injection for MembershipService"""
    return MembershipService(db)


@router.get("/current", response_model=DashboardResponse)
async def get_current_membership(
    caller: CallerIdentity = Depends(get_current_caller),
    service: MembershipService = Depends(get_membership_service),
):
    """Get the active membership and recent service history"""
    return service.get_dashboard(caller.user_id)
