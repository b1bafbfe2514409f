"""Room membership table: connection id -> Member."""
from typing import Dict, Iterator, List, Optional

from .schemas import Member


class MembershipTable:
    """Passive store of authenticated members.

    Name uniqueness is checked by the room before insert; this table only
    offers the lookup.
    """

    def __init__(self) -> None:
        self._members: Dict[str, Member] = {}

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._members

    def __iter__(self) -> Iterator[Member]:
        return iter(list(self._members.values()))

    def get(self, connection_id: str) -> Optional[Member]:
        return self._members.get(connection_id)

    def insert(self, member: Member) -> None:
        self._members[member.connectionId] = member

    def remove(self, connection_id: str) -> Optional[Member]:
        return self._members.pop(connection_id, None)

    def find_by_name(self, display_name: str) -> Optional[Member]:
        """Case-insensitive display name lookup."""
        wanted = display_name.casefold()
        for member in self._members.values():
            if member.displayName.casefold() == wanted:
                return member
        return None

    def connection_ids(self) -> List[str]:
        return list(self._members.keys())

    def presence(self) -> dict:
        """Presence payload: count plus public member views (no origin)."""
        members = [m.public_view() for m in self._members.values()]
        return {"count": len(members), "members": members}
