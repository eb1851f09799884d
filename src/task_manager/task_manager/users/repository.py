from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for users.

    Services depend on this interface, never on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def list_by_ids(self, user_ids: Sequence[int]) -> Sequence[User]:
        raise NotImplementedError

    def list_by_org(self, org_id: int, *, include_inactive: bool = True) -> Sequence[User]:
        raise NotImplementedError

    def find_org_admin(self, org_id: int) -> Optional[User]:
        """First active admin/superadmin of the organization."""

        raise NotImplementedError

    def create_user(
        self,
        *,
        org_id: int,
        full_name: str,
        username: str,
        password_hash: str,
        role: Role,
        whatsapp_number: Optional[str],
        department: Optional[str],
    ) -> int:
        raise NotImplementedError

    def update_user(
        self,
        user_id: int,
        *,
        full_name: str,
        role: Role,
        whatsapp_number: Optional[str],
        department: Optional[str],
        is_active: bool,
        password_hash: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError
