import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

ADMIN_ROLES = frozenset({"admin", "service_role"})


class AuthUser(BaseModel):
    """
    Represents an authenticated caller resolved from a bearer token.

    The registrations core only consumes ``member_id`` and ``is_admin``;
    credentials are validated upstream.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "authenticated"
    member_id: Optional[uuid.UUID] = None
    app_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES or bool(self.app_metadata.get("is_admin"))

    @property
    def is_service_role(self) -> bool:
        return self.role == "service_role"
