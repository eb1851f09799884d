from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.phone import format_phone_number, is_valid_whatsapp_number
from ..common.validators import require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from ..organizations.repository import OrganizationRepository
from .model import User
from .repository import UserRepository


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    org_id: int
    full_name: str
    role: Role
    department: Optional[str]


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, username: str, password: str) -> SessionUser:
        user = self._users.get_by_username((username or "").strip())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password")

        return SessionUser(
            user_id=user.user_id,
            org_id=user.org_id,
            full_name=user.full_name,
            role=user.role,
            department=user.department,
        )


class UserService:
    """Use case: team management (admin)."""

    def __init__(self, users: UserRepository, organizations: OrganizationRepository):
        self._users = users
        self._organizations = organizations

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can manage the team")

    def _get_member(self, org_id: int, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user or user.org_id != int(org_id):
            raise NotFoundError("Team member not found")
        return user

    def _clean_whatsapp(self, whatsapp_number: Optional[str]) -> Optional[str]:
        raw = (whatsapp_number or "").strip()
        if not raw:
            return None
        if not is_valid_whatsapp_number(raw):
            raise ValidationError("WhatsApp number must have 10 digits")
        return format_phone_number(raw)

    def _clean_department(self, org_id: int, department: Optional[str]) -> Optional[str]:
        dept = (department or "").strip()
        if not dept:
            return None
        org = self._organizations.get_by_id(int(org_id))
        allowed = {d.lower(): d for d in (org.departments if org else ())}
        if dept.lower() not in allowed:
            raise ValidationError(f"Unknown department: {dept}")
        return allowed[dept.lower()]

    def list_members(self, *, org_id: int, include_inactive: bool = True) -> Sequence[User]:
        return self._users.list_by_org(int(org_id), include_inactive=include_inactive)

    def add_member(
        self,
        *,
        current_role: Role,
        org_id: int,
        full_name: str,
        username: str,
        password: str,
        role: Role = Role.STAFF,
        whatsapp_number: Optional[str] = None,
        department: Optional[str] = None,
    ) -> int:
        self._require_admin(current_role)

        full_name = require_non_empty(full_name, "Name")
        username = require_non_empty(username, "Username")
        require_min_length(password, "Password", 6)
        if role == Role.SUPERADMIN:
            raise ValidationError("Superadmin accounts cannot be created from the team screen")

        if self._users.get_by_username(username):
            raise ValidationError("Username already exists")

        return self._users.create_user(
            org_id=int(org_id),
            full_name=full_name,
            username=username,
            password_hash=generate_password_hash(password),
            role=role,
            whatsapp_number=self._clean_whatsapp(whatsapp_number),
            department=self._clean_department(org_id, department),
        )

    def update_member(
        self,
        *,
        current_role: Role,
        org_id: int,
        user_id: int,
        full_name: str,
        role: Role,
        whatsapp_number: Optional[str] = None,
        department: Optional[str] = None,
        is_active: bool = True,
        password: Optional[str] = None,
    ) -> None:
        self._require_admin(current_role)
        member = self._get_member(org_id, user_id)

        if member.role == Role.SUPERADMIN and current_role != Role.SUPERADMIN:
            raise AuthorizationError("Only a superadmin can edit a superadmin account")
        if role == Role.SUPERADMIN and member.role != Role.SUPERADMIN:
            raise ValidationError("Superadmin role cannot be assigned from the team screen")

        password_hash = None
        if password:
            require_min_length(password, "Password", 6)
            password_hash = generate_password_hash(password)

        ok = self._users.update_user(
            member.user_id,
            full_name=require_non_empty(full_name, "Name"),
            role=role,
            whatsapp_number=self._clean_whatsapp(whatsapp_number),
            department=self._clean_department(org_id, department),
            is_active=bool(is_active),
            password_hash=password_hash,
        )
        if not ok:
            raise ValidationError("Failed to update team member")

    def set_active(self, *, current_role: Role, org_id: int, user_id: int, is_active: bool) -> None:
        self._require_admin(current_role)
        member = self._get_member(org_id, user_id)
        if member.role == Role.SUPERADMIN:
            raise ValidationError("A superadmin account cannot be deactivated")
        self._users.set_active(member.user_id, is_active=bool(is_active))

    def delete_member(self, *, current_role: Role, current_user_id: int, org_id: int, user_id: int) -> None:
        self._require_admin(current_role)

        if int(user_id) == int(current_user_id):
            raise ValidationError("You cannot delete your own account")

        member = self._get_member(org_id, user_id)
        if member.role == Role.SUPERADMIN:
            raise ValidationError("A superadmin account cannot be deleted")

        if not self._users.delete_by_id(member.user_id):
            raise ValidationError("Failed to delete team member")


def user_to_dict(user: User) -> dict:
    return {
        "user_id": user.user_id,
        "org_id": user.org_id,
        "full_name": user.full_name,
        "username": user.username,
        "role": user.role.value,
        "whatsapp_number": user.whatsapp_number,
        "department": user.department,
        "is_active": user.is_active,
    }
