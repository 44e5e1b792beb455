"""Caller identity, resolved once per request and passed explicitly."""

from dataclasses import dataclass

GUEST_PREFIX = "guest-"


@dataclass(frozen=True)
class Caller:
    """Who is talking to the assistant.

    Guests (no user id, or the ``guest-`` ids the web client generates for
    anonymous sessions) never read or write stored records.
    """

    owner_id: str

    @property
    def is_guest(self) -> bool:
        return not self.owner_id or self.owner_id.startswith(GUEST_PREFIX)


def resolve_caller(user_id: str | None) -> Caller:
    return Caller(owner_id=(user_id or "").strip())
