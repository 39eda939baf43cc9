from fastapi import APIRouter, Depends, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from flux.auth.deps import TOKEN_COOKIE, get_current_user
from flux.db import get_db
from flux.models.membership import OrgMembership, TeamMembership
from flux.models.org import Organization
from flux.models.team import Team
from flux.models.user import User
from flux.schemas.auth import MeOrgOut, MeOut, MeTeamOut
from flux.services import cascade

router = APIRouter(prefix="/me", tags=["me"])

@router.get("", response_model=MeOut)
def get_me(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MeOut:
    orgs = db.execute(
        select(OrgMembership, Organization)
        .join(Organization, Organization.id == OrgMembership.org_id)
        .where(OrgMembership.user_id == user.id)
        .order_by(Organization.name)
    ).all()
    teams = db.execute(
        select(TeamMembership, Team)
        .join(Team, Team.id == TeamMembership.team_id)
        .where(TeamMembership.user_id == user.id)
        .order_by(Team.name)
    ).all()
    return MeOut(
        id=user.id,
        email=user.email,
        handle=user.handle,
        name=user.name,
        memberships=[MeOrgOut(org_id=o.id, name=o.name, role=m.role.value) for m, o in orgs],
        team_memberships=[
            MeTeamOut(team_id=t.id, org_id=t.org_id, name=t.name, role=m.role.value) for m, t in teams
        ],
    )

@router.delete("")
def delete_me(
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    cascade.delete_user(db, user.id)
    response.delete_cookie(TOKEN_COOKIE)
    return {"ok": True}
