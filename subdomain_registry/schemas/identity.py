"""Caller identity as verified from the Identity Provider's bearer token."""

from pydantic import BaseModel, ConfigDict


class Actor(BaseModel):
    """The verified (owner id, email, admin flag) triple for a request."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None
    is_admin: bool = False
