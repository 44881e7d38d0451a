from pydantic import BaseModel
from typing import Optional


class User(BaseModel):
    """Authenticated caller, resolved from the access token."""
    id: int
    email: str
    preferences: Optional[dict] = None


class MeResponse(BaseModel):
    id: int
    email: str
    name: str
