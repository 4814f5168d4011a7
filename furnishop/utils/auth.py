from dataclasses import dataclass

from fastapi import Header

from furnishop.errors import PermissionDeniedError
from furnishop.utils.enums import UserRole


@dataclass(frozen=True)
class CurrentUser:
    id: str
    name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def actor(self) -> str:
        return self.name or self.id


# Identity is resolved upstream (auth proxy) and forwarded in headers
def get_current_user(
    x_user_id: str = Header(...),
    x_user_name: str = Header(""),
    x_user_role: str = Header(UserRole.BUYER.value),
) -> CurrentUser:
    return CurrentUser(id=x_user_id, name=x_user_name, role=x_user_role.strip().lower())


def ensure_owner_or_admin(user: CurrentUser, owner_id: str):
    if not user.is_admin and str(owner_id) != user.id:
        raise PermissionDeniedError("Access denied")
