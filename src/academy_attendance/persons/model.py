from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import EMPLOYEE_LIKE_ROLES, Role


@dataclass(frozen=True)
class Person:
    """Thực thể miền (domain): người được chấm công.

    Lưu ý: bản ghi do identity provider quản lý; ở đây chỉ đọc.
    """

    person_id: int
    full_name: str
    role: Role
    employee_code: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = True

    @property
    def is_employee_like(self) -> bool:
        return self.role in EMPLOYEE_LIKE_ROLES
