"""
Auth endpoint data models.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StaffRole(str, Enum):
    """Staff roles known to the backend."""
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"


class StaffUser(BaseModel):
    """Signed-in staff member."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    full_name: str = Field(..., alias="fullName")
    email: str
    role: StaffRole
    phone: Optional[str] = None
    is_male: Optional[bool] = Field(None, alias="isMale")
    date_of_birth: Optional[str] = Field(None, alias="dateOfBirth")
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")


class LoginResponse(BaseModel):
    """Payload of a successful login."""
    access_token: str
    refresh_token: str
    user: StaffUser


class TokenPairResponse(BaseModel):
    """Payload of an explicit token refresh."""
    access_token: str
    refresh_token: str


class OperationResult(BaseModel):
    """Acknowledgement returned by endpoints with no data."""
    success: bool = True
    message: str = ""
