from pydantic import BaseModel, ConfigDict, EmailStr
from typing import Optional

class TokenOut(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    refresh_token: str | None = None

class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    role: str

class ActionOkOut(BaseModel):
    ok: bool = True
    message: Optional[str] = None
