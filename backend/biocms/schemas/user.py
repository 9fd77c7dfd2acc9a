from pydantic import EmailStr, Field
from typing import Optional

from biocms.models.user import UserRole
from biocms.schemas.common import CamelModel


class AdminUserCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.USER
    is_active: bool = True


class AdminUserUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class RoleUpdate(CamelModel):
    role: UserRole
