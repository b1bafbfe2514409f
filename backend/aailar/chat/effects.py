"""Side effects produced by Room.dispatch().

The room never touches a socket. Each dispatch returns an ordered list of
these values and the ConnectionManager performs them.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class Scope(str, Enum):
    """Who receives a broadcast.

    Attributes:
        ROOM: Every authenticated member, including the originator.
        OTHERS: Every authenticated member except the originator.
    """
    ROOM = "room"
    OTHERS = "others"


class ErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    NAME_TAKEN = "name_taken"
    NOT_AUTHENTICATED = "not_authenticated"
    ALREADY_JOINED = "already_joined"
    INVALID_FORMAT = "invalid_format"
    EMPTY_MESSAGE = "empty_message"
    NOT_FOUND = "not_found"
    NOT_OWNER = "not_owner"
    CAPACITY = "capacity"
    PER_ORIGIN = "per_origin"


ADMISSION_ERROR_KINDS = frozenset({ErrorKind.CAPACITY, ErrorKind.PER_ORIGIN})

# Kinds reported on the auth-error channel; the rest go to message-error.
AUTH_ERROR_KINDS = frozenset({
    ErrorKind.INVALID_CREDENTIALS,
    ErrorKind.NAME_TAKEN,
    ErrorKind.NOT_AUTHENTICATED,
    ErrorKind.ALREADY_JOINED,
})


@dataclass(frozen=True)
class Broadcast:
    event: str
    payload: dict = field(default_factory=dict)
    scope: Scope = Scope.ROOM
    origin: Optional[str] = None


@dataclass(frozen=True)
class Unicast:
    event: str
    payload: dict = field(default_factory=dict)


@dataclass(frozen=True)
class NoOp:
    pass


@dataclass(frozen=True)
class Rejection:
    kind: ErrorKind
    reason: str

    @property
    def event(self) -> str:
        if self.kind in ADMISSION_ERROR_KINDS:
            return "capacity-error"
        return "auth-error" if self.kind in AUTH_ERROR_KINDS else "message-error"

    @property
    def payload(self) -> dict:
        return {"kind": self.kind.value, "reason": self.reason}


Effect = Union[Broadcast, Unicast, NoOp, Rejection]
