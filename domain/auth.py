"""Domain Entities - Auth"""
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from typing import Optional

from domain.enums import UserRole


class User(BaseModel):
    """User Entity"""
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(default_factory=uuid4)
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole = UserRole.GUEST
    disabled: bool = False

    def is_staff(self) -> bool:
        """Admins and receptionists may act on any reservation"""
        return self.role in (UserRole.ADMIN, UserRole.RECEPTIONIST)


class UserInDB(User):
    """User with hashed password for DB storage"""
    hashed_password: str
