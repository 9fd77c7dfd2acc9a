from pydantic import EmailStr, Field, model_validator
from typing import Optional

from biocms.schemas.common import CamelModel


class UserRegister(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)
    password_confirm: Optional[str] = None

    @model_validator(mode='after')
    def passwords_match(self):
        if self.password_confirm is not None and self.password_confirm != self.password:
            raise ValueError("Passwords do not match")
        return self


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None


class PasswordUpdate(CamelModel):
    current_password: str
    new_password: str = Field(..., min_length=8)
    password_confirm: Optional[str] = None

    @model_validator(mode='after')
    def passwords_match(self):
        if self.password_confirm is not None and self.password_confirm != self.new_password:
            raise ValueError("Passwords do not match")
        return self


class ForgotPassword(CamelModel):
    email: EmailStr


class ResetPassword(CamelModel):
    password: str = Field(..., min_length=8)
    password_confirm: Optional[str] = None

    @model_validator(mode='after')
    def passwords_match(self):
        if self.password_confirm is not None and self.password_confirm != self.password:
            raise ValueError("Passwords do not match")
        return self
