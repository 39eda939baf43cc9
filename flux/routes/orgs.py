import uuid

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from flux.auth.deps import get_current_user
from flux.config import settings
from flux.db import get_db
from flux.models.enums import OrgRole, TeamRole
from flux.models.membership import OrgMembership, TeamMembership
from flux.models.org import Organization
from flux.models.team import Team
from flux.models.user import User
from flux.ratelimit import rate_limit
from flux.rbac.deps import OrgContext, get_org_context, require_org_admin
from flux.schemas.orgs import (
    JoinCodeCreateIn,
    JoinCodeOut,
    JoinIn,
    JoinOut,
    MemberOut,
    OrgCreateIn,
    OrgDetailsOut,
    OrgMemberOut,
    OrgOut,
    OrgSummaryOut,
    OrgTeamDetailOut,
    OrgUpdateIn,
    PersonOut,
    RoleUpdateIn,
)
from flux.schemas.teams import TeamCreateIn, TeamOut
from flux.services import cascade, membership
from flux.services.membership import clean_name

router = APIRouter(prefix="/orgs", tags=["orgs"])

def _join_code_out(jc) -> JoinCodeOut:
    return JoinCodeOut(
        id=jc.id,
        org_id=jc.org_id,
        code=jc.code,
        expires_at=jc.expires_at,
        max_uses=jc.max_uses,
        uses=jc.uses,
    )

def _member_count(db: Session, org_id: uuid.UUID) -> int:
    return db.scalar(
        select(func.count()).select_from(OrgMembership).where(OrgMembership.org_id == org_id)
    ) or 0

@router.post("", response_model=OrgOut)
def create_org(
    payload: OrgCreateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrgOut:
    org = membership.create_org(db, user.id, payload.name)
    return OrgOut(id=org.id, name=org.name)

@router.get("", response_model=list[OrgOut])
def list_orgs(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[OrgOut]:
    q = (
        select(Organization)
        .join(OrgMembership, OrgMembership.org_id == Organization.id)
        .where(OrgMembership.user_id == user.id)
        .order_by(Organization.created_at.desc())
    )
    orgs = db.scalars(q).all()
    return [OrgOut(id=o.id, name=o.name) for o in orgs]

# registered before /{org_id} routes so "join" is never parsed as an id
@router.post("/join", response_model=JoinOut)
def join_org(
    payload: JoinIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    _: None = Depends(
        rate_limit(
            "orgs:join",
            limit_per_window=settings.rate_limit_join_per_min,
            window_seconds=60,
        )
    ),
) -> JoinOut:
    org_id = membership.redeem_join_code(db, user.id, payload.code)
    return JoinOut(org_id=org_id)

@router.get("/{org_id}", response_model=OrgSummaryOut)
def get_org(ctx: OrgContext = Depends(get_org_context), db: Session = Depends(get_db)) -> OrgSummaryOut:
    return OrgSummaryOut(id=ctx.org.id, name=ctx.org.name, member_count=_member_count(db, ctx.org.id))

@router.patch("/{org_id}", response_model=OrgOut)
def rename_org(
    payload: OrgUpdateIn,
    ctx: OrgContext = Depends(require_org_admin),
    db: Session = Depends(get_db),
) -> OrgOut:
    ctx.org.name = clean_name(payload.name)
    db.commit()
    return OrgOut(id=ctx.org.id, name=ctx.org.name)

@router.delete("/{org_id}")
def delete_org(
    ctx: OrgContext = Depends(require_org_admin),
    db: Session = Depends(get_db),
) -> dict:
    cascade.delete_org(db, ctx.org.id)
    return {"ok": True}

@router.get("/{org_id}/details", response_model=OrgDetailsOut)
def org_details(
    ctx: OrgContext = Depends(require_org_admin),
    db: Session = Depends(get_db),
) -> OrgDetailsOut:
    teams = db.scalars(select(Team).where(Team.org_id == ctx.org.id).order_by(Team.name)).all()
    rows = db.execute(
        select(TeamMembership, User)
        .join(User, User.id == TeamMembership.user_id)
        .where(TeamMembership.team_id.in_([t.id for t in teams]))
    ).all() if teams else []

    by_team: dict[uuid.UUID, list] = {}
    for m, u in rows:
        by_team.setdefault(m.team_id, []).append((m.role, PersonOut(user_id=u.id, name=u.name, handle=u.handle)))

    shaped = [
        OrgTeamDetailOut(
            id=t.id,
            name=t.name,
            leaders=[p for role, p in by_team.get(t.id, []) if role == TeamRole.leader],
            members=[p for role, p in by_team.get(t.id, []) if role == TeamRole.member],
        )
        for t in teams
    ]
    return OrgDetailsOut(
        id=ctx.org.id,
        name=ctx.org.name,
        member_count=_member_count(db, ctx.org.id),
        teams=shaped,
    )

# ---- join codes ----

@router.post("/{org_id}/join-codes", response_model=JoinCodeOut)
def rotate_join_code(
    payload: JoinCodeCreateIn,
    ctx: OrgContext = Depends(require_org_admin),
    db: Session = Depends(get_db),
) -> JoinCodeOut:
    jc = membership.rotate_join_code(db, ctx.org.id, payload.expires_at, payload.max_uses)
    return _join_code_out(jc)

@router.get("/{org_id}/join-codes", response_model=list[JoinCodeOut])
def list_join_codes(
    ctx: OrgContext = Depends(require_org_admin),
    db: Session = Depends(get_db),
) -> list[JoinCodeOut]:
    jc = membership.current_join_code(db, ctx.org.id)
    return [_join_code_out(jc)] if jc else []

# ---- members ----

@router.get("/{org_id}/members", response_model=list[OrgMemberOut])
@router.get("/{org_id}/users", response_model=list[OrgMemberOut])
def list_members(
    ctx: OrgContext = Depends(require_org_admin),
    db: Session = Depends(get_db),
) -> list[OrgMemberOut]:
    rows = db.execute(
        select(OrgMembership, User)
        .join(User, User.id == OrgMembership.user_id)
        .where(OrgMembership.org_id == ctx.org.id)
        .order_by(OrgMembership.role, User.handle)
    ).all()
    return [OrgMemberOut(user_id=u.id, name=u.name, handle=u.handle, role=m.role) for m, u in rows]

def _leave(org_id: uuid.UUID, user: User, db: Session) -> dict:
    membership.leave_org(db, org_id, user.id)
    return {"ok": True}

@router.delete("/{org_id}/members/me")
def leave_org_via_members(
    org_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return _leave(org_id, user, db)

@router.post("/{org_id}/leave")
def leave_org(
    org_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return _leave(org_id, user, db)

@router.delete("/{org_id}/leave")
def leave_org_via_delete(
    org_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return _leave(org_id, user, db)

@router.patch("/{org_id}/members/{user_id}", response_model=MemberOut)
def update_member_role(
    user_id: uuid.UUID,
    payload: RoleUpdateIn,
    ctx: OrgContext = Depends(require_org_admin),
    db: Session = Depends(get_db),
) -> MemberOut:
    m = membership.update_org_role(db, ctx.org.id, user_id, payload.role)
    return MemberOut(user_id=m.user_id, org_id=m.org_id, role=m.role)

@router.delete("/{org_id}/members/{user_id}")
def remove_member(
    user_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_admin),
    db: Session = Depends(get_db),
) -> dict:
    membership.remove_org_member(db, ctx.org.id, user_id)
    return {"ok": True}

# ---- teams ----

@router.post("/{org_id}/teams", response_model=TeamOut)
def create_team(
    payload: TeamCreateIn,
    ctx: OrgContext = Depends(require_org_admin),
    db: Session = Depends(get_db),
) -> TeamOut:
    team = membership.create_team(db, ctx.org.id, ctx.user.id, payload.name)
    return TeamOut(id=team.id, org_id=team.org_id, name=team.name)

@router.get("/{org_id}/teams", response_model=list[TeamOut])
def list_teams(
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> list[TeamOut]:
    q = select(Team).where(Team.org_id == ctx.org.id)
    if ctx.membership.role != OrgRole.admin:
        q = q.join(TeamMembership, TeamMembership.team_id == Team.id).where(
            TeamMembership.user_id == ctx.user.id
        )
    teams = db.scalars(q.order_by(Team.name)).all()
    return [TeamOut(id=t.id, org_id=t.org_id, name=t.name) for t in teams]
