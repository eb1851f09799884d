from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a team member.

    Plain data object; all DB access lives in the repository.
    """

    user_id: int
    org_id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    whatsapp_number: Optional[str] = None
    department: Optional[str] = None
    is_active: bool = True
