import uuid
from pydantic import BaseModel

class SsoProfileIn(BaseModel):
    provider_id: str
    email: str | None = None
    display_name: str | None = None
    username: str | None = None

class AccessTokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"

class UserOut(BaseModel):
    id: uuid.UUID
    email: str | None
    handle: str
    name: str | None

class MeOrgOut(BaseModel):
    org_id: uuid.UUID
    name: str
    role: str

class MeTeamOut(BaseModel):
    team_id: uuid.UUID
    org_id: uuid.UUID
    name: str
    role: str

class MeOut(UserOut):
    memberships: list[MeOrgOut]
    team_memberships: list[MeTeamOut]
