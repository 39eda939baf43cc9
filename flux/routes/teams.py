import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from flux.auth.deps import get_current_user
from flux.db import get_db
from flux.errors import DomainError
from flux.models.enums import TeamRole
from flux.models.membership import TeamMembership
from flux.models.team import Team, TeamLink
from flux.models.user import User
from flux.rbac import perms
from flux.rbac.deps import (
    TeamContext,
    require_team_admin_or_leader,
    require_team_org_admin,
    require_team_read,
    require_team_write,
)
from flux.schemas.teams import (
    ActivityOut,
    TeamInfoIn,
    TeamInfoOut,
    TeamLinkIn,
    TeamLinkOut,
    TeamLinkUpdateIn,
    TeamMemberIn,
    TeamMemberOut,
    TeamMembershipOut,
    TeamOut,
    TeamPermissionsOut,
    TeamUpdateIn,
)
from flux.services import activity, cascade, membership
from flux.services.membership import clean_name

router = APIRouter(prefix="/teams", tags=["teams"])

def _link_out(link: TeamLink) -> TeamLinkOut:
    return TeamLinkOut(id=link.id, team_id=link.team_id, label=link.label, url=link.url, ordinal=link.ordinal)

def _membership_out(m: TeamMembership) -> TeamMembershipOut:
    return TeamMembershipOut(team_id=m.team_id, user_id=m.user_id, role=m.role)

@router.get("/{team_id}", response_model=TeamOut)
def get_team(ctx: TeamContext = Depends(require_team_read)) -> TeamOut:
    return TeamOut(id=ctx.team.id, org_id=ctx.team.org_id, name=ctx.team.name)

@router.patch("/{team_id}", response_model=TeamOut)
def rename_team(
    payload: TeamUpdateIn,
    ctx: TeamContext = Depends(require_team_write),
    db: Session = Depends(get_db),
) -> TeamOut:
    ctx.team.name = clean_name(payload.name)
    db.commit()
    return TeamOut(id=ctx.team.id, org_id=ctx.team.org_id, name=ctx.team.name)

@router.delete("/{team_id}")
def delete_team(
    ctx: TeamContext = Depends(require_team_org_admin),
    db: Session = Depends(get_db),
) -> dict:
    cascade.delete_team(db, ctx.team.id)
    return {"ok": True}

# ---- members ----

@router.get("/{team_id}/members", response_model=list[TeamMemberOut])
def list_members(
    ctx: TeamContext = Depends(require_team_read),
    db: Session = Depends(get_db),
) -> list[TeamMemberOut]:
    rows = db.execute(
        select(TeamMembership, User)
        .join(User, User.id == TeamMembership.user_id)
        .where(TeamMembership.team_id == ctx.team.id)
        .order_by(TeamMembership.role, User.handle)
    ).all()
    return [TeamMemberOut(user_id=u.id, handle=u.handle, name=u.name, role=m.role) for m, u in rows]

@router.post("/{team_id}/members", response_model=TeamMembershipOut)
def add_member(
    payload: TeamMemberIn,
    ctx: TeamContext = Depends(require_team_org_admin),
    db: Session = Depends(get_db),
) -> TeamMembershipOut:
    m = membership.add_team_member(db, ctx.team, payload.user_id, TeamRole.member)
    return _membership_out(m)

@router.post("/{team_id}/leader", response_model=TeamMembershipOut)
def promote_leader(
    payload: TeamMemberIn,
    ctx: TeamContext = Depends(require_team_org_admin),
    db: Session = Depends(get_db),
) -> TeamMembershipOut:
    m = membership.add_team_member(db, ctx.team, payload.user_id, TeamRole.leader)
    return _membership_out(m)

@router.delete("/{team_id}/members/{user_id}")
def remove_member(
    user_id: uuid.UUID,
    ctx: TeamContext = Depends(require_team_write),
    db: Session = Depends(get_db),
) -> dict:
    membership.remove_team_member(db, ctx.team, user_id)
    return {"ok": True}

@router.get("/{team_id}/permissions", response_model=TeamPermissionsOut)
def get_permissions(
    team_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeamPermissionsOut:
    team = db.get(Team, team_id)
    if team is None:
        raise HTTPException(status_code=404, detail="team not found")
    summary = perms.team_permissions(db, team, user.id)
    if summary is None:
        raise HTTPException(status_code=403, detail="forbidden")
    return TeamPermissionsOut(**summary)

# ---- info + links ----

def _links(db: Session, team_id: uuid.UUID) -> list[TeamLink]:
    return list(db.scalars(select(TeamLink).where(TeamLink.team_id == team_id).order_by(TeamLink.ordinal)).all())

@router.get("/{team_id}/info", response_model=TeamInfoOut)
def get_info(
    ctx: TeamContext = Depends(require_team_read),
    db: Session = Depends(get_db),
) -> TeamInfoOut:
    return TeamInfoOut(
        id=ctx.team.id,
        name=ctx.team.name,
        info=ctx.team.info,
        links=[_link_out(link) for link in _links(db, ctx.team.id)],
    )

@router.patch("/{team_id}/info")
def update_info(
    payload: TeamInfoIn,
    ctx: TeamContext = Depends(require_team_write),
    db: Session = Depends(get_db),
) -> dict:
    ctx.team.info = payload.info
    db.commit()
    return {"ok": True, "info": ctx.team.info}

@router.post("/{team_id}/links", response_model=TeamLinkOut)
def create_link(
    payload: TeamLinkIn,
    ctx: TeamContext = Depends(require_team_write),
    db: Session = Depends(get_db),
) -> TeamLinkOut:
    if not payload.label or not payload.url:
        raise DomainError("label_and_url_required")

    top = db.scalar(select(func.max(TeamLink.ordinal)).where(TeamLink.team_id == ctx.team.id))
    link = TeamLink(team_id=ctx.team.id, label=payload.label, url=payload.url, ordinal=(top or 0) + 1)
    db.add(link)
    db.commit()
    return _link_out(link)

def _get_link(db: Session, team_id: uuid.UUID, link_id: uuid.UUID) -> TeamLink:
    link = db.get(TeamLink, link_id)
    if link is None or link.team_id != team_id:
        raise HTTPException(status_code=404, detail="link not found")
    return link

@router.patch("/{team_id}/links/{link_id}", response_model=TeamLinkOut)
def update_link(
    link_id: uuid.UUID,
    payload: TeamLinkUpdateIn,
    ctx: TeamContext = Depends(require_team_write),
    db: Session = Depends(get_db),
) -> TeamLinkOut:
    link = _get_link(db, ctx.team.id, link_id)
    if payload.label is not None:
        link.label = payload.label
    if payload.url is not None:
        link.url = payload.url
    if payload.ordinal is not None:
        link.ordinal = payload.ordinal
    db.commit()
    return _link_out(link)

@router.delete("/{team_id}/links/{link_id}")
def delete_link(
    link_id: uuid.UUID,
    ctx: TeamContext = Depends(require_team_write),
    db: Session = Depends(get_db),
) -> dict:
    link = _get_link(db, ctx.team.id, link_id)
    db.delete(link)
    db.commit()
    return {"ok": True}

# ---- activity ----

@router.get("/{team_id}/activity", response_model=list[ActivityOut])
def team_activity(
    from_: datetime | None = Query(default=None, alias="from"),
    to: datetime | None = Query(default=None),
    user_id: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    ctx: TeamContext = Depends(require_team_admin_or_leader),
    db: Session = Depends(get_db),
) -> list[ActivityOut]:
    actor: uuid.UUID | None = None
    if user_id and user_id != "ALL":
        try:
            actor = uuid.UUID(user_id)
        except ValueError:
            raise DomainError("invalid_user_id")

    rows = activity.list_activity(
        db,
        ctx.team.id,
        from_=from_,
        to=to,
        user_id=actor,
        limit=activity.clamp_limit(limit),
    )
    return [ActivityOut(**r) for r in rows]
