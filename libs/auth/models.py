from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from libs.common.config import get_settings


class AuthUser(BaseModel):
    """
    Identity carried by a verified bearer token.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    role: str = "authenticated"

    @property
    def is_admin(self) -> bool:
        return self.role in get_settings().ADMIN_ROLES
