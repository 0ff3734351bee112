from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated user decoded from the access token.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[str] = None
    name: Optional[str] = None
    role: str = "authenticated"

    @property
    def is_admin(self) -> bool:
        return self.role in ("admin", "super_admin", "service_role")
