"""
Invitation API endpoints.

Issuing, cancelling and expiring invitations need an actor. Looking up and
redeeming a token do not: the invitee has no account yet.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.deps import get_actor, get_request_client
from procurement.core.logging import logger
from procurement.db.session import get_db
from procurement.models.invitation import InvitationStatus
from procurement.models.user import User as UserModel
from procurement.schemas.invitation import (
    ExpiredInvitations,
    Invitation,
    InvitationCreate,
    InvitationRedeem,
    IssuedInvitation,
)
from procurement.schemas.user import User
from procurement.services.invitation import InvitationService

router = APIRouter()


@router.post("/", response_model=IssuedInvitation, status_code=status.HTTP_201_CREATED)
async def issue_invitation(
    invite: InvitationCreate,
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    """
    Issue an invitation.

    Args:
        invite: Invitee details, department and roles
        db: Database session
        actor: Issuing user
        client_info: Client IP and user agent

    Returns:
        The invitation including its token, which is shown only here
    """
    logger.info(f"Invitation requested by: {actor.id}")
    return await InvitationService.issue(db, invite, actor, client=client_info)


@router.get("/", response_model=List[Invitation])
async def list_invitations(
    status: Optional[InvitationStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
):
    return await InvitationService.list(db, status)


@router.post("/expire", response_model=ExpiredInvitations)
async def expire_invitations(
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
):
    return ExpiredInvitations(expired=await InvitationService.expire_stale(db))


@router.get("/token/{token}", response_model=Invitation)
async def get_invitation_by_token(token: str, db: AsyncSession = Depends(get_db)):
    """Invitation details for the registration page."""
    return await InvitationService.get_by_token(db, token)


@router.post("/token/{token}/redeem", response_model=User, status_code=status.HTTP_201_CREATED)
async def redeem_invitation(
    token: str,
    body: InvitationRedeem,
    db: AsyncSession = Depends(get_db),
    client_info = Depends(get_request_client)
):
    return await InvitationService.redeem(db, token, body.password, client=client_info)


@router.post("/{invitation_id}/cancel", response_model=Invitation)
async def cancel_invitation(
    invitation_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await InvitationService.cancel(db, invitation_id, actor, client=client_info)
