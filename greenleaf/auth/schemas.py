from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime
from greenleaf.shared.security_config import validate_password_strength, sanitize_input

PASSWORD_RULES = "Password must be at least 6 characters long and contain letters and numbers"

def _check_password(v: str) -> str:
    if not validate_password_strength(v):
        raise ValueError(PASSWORD_RULES)
    return v

class AddressBase(BaseModel):
    label: Literal["Home", "Work", "Other"] = "Home"
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    line1: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip: str = Field(..., min_length=1)

class AddressSchema(AddressBase):
    @field_validator('name', 'phone', 'line1', 'city', 'state', 'zip')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class UserRegister(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str

    @field_validator('password')
    def password_complexity(cls, v):
        return _check_password(v)

    @field_validator('name')
    def sanitize_name(cls, v):
        return sanitize_input(v)

class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class GoogleLogin(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    name: str = Field(..., min_length=2)
    google_id: str = Field(..., min_length=1, alias="googleId")
    picture: Optional[str] = None

    @field_validator('name')
    def sanitize_name(cls, v):
        return sanitize_input(v)

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)

    @field_validator('name')
    def sanitize_name(cls, v):
        return sanitize_input(v)

class PasswordChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")

    @field_validator('new_password')
    def password_complexity(cls, v):
        return _check_password(v)

class ForgotPassword(BaseModel):
    email: EmailStr

class OtpPasswordReset(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    otp: str = Field(..., pattern=r"^\d{6}$")
    new_password: str = Field(..., alias="newPassword")

    @field_validator('new_password')
    def password_complexity(cls, v):
        return _check_password(v)

class RoleUpdate(BaseModel):
    role: Literal["user", "admin"]

class AddressesUpdate(BaseModel):
    addresses: List[AddressSchema]

class UserResponse(BaseModel):
    id: str
    name: str
    email: EmailStr
    role: str
    picture: Optional[str] = None
    addresses: List[AddressBase] = []
    created_at: datetime

class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse
