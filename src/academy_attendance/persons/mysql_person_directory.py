from __future__ import annotations

from typing import Collection, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Person
from .repository import PersonDirectory

_SELECT = """
    SELECT u.user_id, u.full_name, u.role, u.email, u.phone, u.is_active, ep.employee_code
    FROM users u
    LEFT JOIN employee_profiles ep ON ep.user_id = u.user_id
"""


def _to_person(row: dict) -> Person:
    return Person(
        person_id=int(row["user_id"]),
        full_name=row["full_name"],
        role=Role(row["role"]),
        employee_code=row.get("employee_code"),
        email=row.get("email"),
        phone=row.get("phone"),
        is_active=bool(row.get("is_active", True)),
    )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _role_clause(roles: Collection[Role]) -> tuple[str, list[object]]:
    values = [r.value for r in roles]
    if not values:
        return "1=0", []
    return f"u.role IN ({', '.join(['%s'] * len(values))})", values


class MySQLPersonDirectory(PersonDirectory):
    """Read-only view over the users/employee_profiles tables."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, person_id: int) -> Optional[Person]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE u.user_id=%s", (int(person_id),))
            row = fetchone(cur)
            return _to_person(row) if row else None

    def find_by_identifier(self, identifier: str, *, roles: Collection[Role]) -> Sequence[Person]:
        role_sql, role_params = _role_clause(roles)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT
                + f"""
                WHERE (ep.employee_code=%s OR u.email=%s OR u.phone=%s)
                  AND u.is_active=1 AND {role_sql}
                ORDER BY u.user_id ASC
                """,
                (identifier, identifier, identifier, *role_params),
            )
            return [_to_person(r) for r in fetchall(cur)]

    def search_by_name(self, fragment: str, *, roles: Collection[Role]) -> Sequence[Person]:
        return self.search_by_name_tokens([fragment], roles=roles)

    def search_by_name_tokens(self, tokens: Sequence[str], *, roles: Collection[Role]) -> Sequence[Person]:
        if not tokens:
            return []
        role_sql, role_params = _role_clause(roles)
        name_sql = " AND ".join(["LOWER(u.full_name) LIKE %s"] * len(tokens))
        name_params = [f"%{_escape_like(t.lower())}%" for t in tokens]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT
                + f"""
                WHERE {name_sql} AND u.is_active=1 AND {role_sql}
                ORDER BY u.user_id ASC
                """,
                (*name_params, *role_params),
            )
            return [_to_person(r) for r in fetchall(cur)]
