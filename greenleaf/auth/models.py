from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from greenleaf.shared.utils import utcnow

class AddressDB(BaseModel):
    label: str = "Home"  # Home, Work, Other
    name: str
    phone: str
    line1: str
    city: str
    state: str
    zip: str

class UserDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    name: str
    email: EmailStr
    # None for accounts created through Google sign-in
    password_hash: Optional[str] = None
    google_id: Optional[str] = None
    picture: Optional[str] = None
    role: str = "user"  # user, admin
    addresses: List[AddressDB] = []
    otp: str = ""
    otp_expires: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
