import uuid
from datetime import datetime
from pydantic import BaseModel

from flux.models.enums import OrgRole

class OrgCreateIn(BaseModel):
    name: str

class OrgUpdateIn(BaseModel):
    name: str | None = None

class OrgOut(BaseModel):
    id: uuid.UUID
    name: str

class OrgSummaryOut(OrgOut):
    member_count: int

class JoinCodeCreateIn(BaseModel):
    expires_at: datetime | None = None
    max_uses: int | None = None

class JoinCodeOut(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    code: str
    expires_at: datetime | None
    max_uses: int | None
    uses: int

class JoinIn(BaseModel):
    code: str

class JoinOut(BaseModel):
    ok: bool = True
    org_id: uuid.UUID

# role stays a plain string so bad values surface as invalid_role, not 422
class RoleUpdateIn(BaseModel):
    role: str

class MemberOut(BaseModel):
    user_id: uuid.UUID
    org_id: uuid.UUID
    role: OrgRole

class OrgMemberOut(BaseModel):
    user_id: uuid.UUID
    name: str | None
    handle: str
    role: OrgRole

class PersonOut(BaseModel):
    user_id: uuid.UUID
    name: str | None
    handle: str

class OrgTeamDetailOut(BaseModel):
    id: uuid.UUID
    name: str
    leaders: list[PersonOut]
    members: list[PersonOut]

class OrgDetailsOut(OrgSummaryOut):
    teams: list[OrgTeamDetailOut]
