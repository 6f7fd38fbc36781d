"""SessionRegistry - live sessions keyed by session id."""

from typing import TYPE_CHECKING, Callable, Iterator

from .errors import DuplicateSessionError

if TYPE_CHECKING:
    from .session import Session


class SessionRegistry:
    """Mapping of session id to Session.

    One instance is created at startup and shared by the dispatcher and the
    shutdown coordinator. Iteration always works on a snapshot, so a session
    removing itself while being visited cannot disturb the walk.
    """

    def __init__(self) -> None:
        self._sessions: dict[int, "Session"] = {}

    def put(self, session_id: int, session: "Session") -> None:
        """Register a session.

        Raises:
            DuplicateSessionError: If session_id is already registered
        """
        if session_id in self._sessions:
            raise DuplicateSessionError(
                message=f"Session {session_id} already registered",
                data={"session_id": session_id},
            )
        self._sessions[session_id] = session

    def get(self, session_id: int) -> "Session | None":
        """Get a session by id, or None."""
        return self._sessions.get(session_id)

    def remove(self, session_id: int) -> None:
        """Remove a session; no-op if absent."""
        self._sessions.pop(session_id, None)

    def snapshot(self) -> list["Session"]:
        """Current sessions, in registration order."""
        return list(self._sessions.values())

    def for_each(self, func: Callable[["Session"], None]) -> None:
        """Call func on every session present when the walk starts."""
        for session in self.snapshot():
            func(session)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._sessions))
