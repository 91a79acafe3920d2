from __future__ import annotations

from typing import Collection, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Person


class PersonDirectory(Protocol):
    """Giao diện tới identity/role provider.

    Lưu ý (DIP): resolver và service chỉ phụ thuộc vào interface này.
    """

    def get_by_id(self, person_id: int) -> Optional[Person]:
        raise NotImplementedError

    def find_by_identifier(self, identifier: str, *, roles: Collection[Role]) -> Sequence[Person]:
        """Exact match of `identifier` against employee code, email or phone."""

        raise NotImplementedError

    def search_by_name(self, fragment: str, *, roles: Collection[Role]) -> Sequence[Person]:
        """Case-insensitive substring match on full name, ordered by person_id."""

        raise NotImplementedError

    def search_by_name_tokens(self, tokens: Sequence[str], *, roles: Collection[Role]) -> Sequence[Person]:
        """Persons whose full name contains every token (case-insensitive), ordered by person_id."""

        raise NotImplementedError
