"""
Live visitor presence.

Membership on the shared presence channel is keyed by visitor_id, so a
visitor with several tabs open is one key. Every notification from the
channel is folded into an explicit membership map by apply_presence_event()
and the visitor count is recounted from that map; nothing is incremented or
decremented by hand.
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from utils.logger_factory import new_logger
from utils.supabase_realtime import PRESENCE_CHANNEL_NAME, SUBSCRIBED
from utils.visitor_identity import VisitorIdentityProvider

SYNC = "sync"
JOIN = "join"
LEAVE = "leave"


@dataclass(frozen=True)
class PresenceEvent:
    kind: str
    key: Optional[str] = None
    presences: tuple = ()
    state: Optional[dict] = None

    @classmethod
    def sync(cls, state: dict) -> "PresenceEvent":
        return cls(kind=SYNC, state=state)

    @classmethod
    def join(cls, key: str, presences) -> "PresenceEvent":
        return cls(kind=JOIN, key=key, presences=tuple(presences or ()))

    @classmethod
    def leave(cls, key: str, presences) -> "PresenceEvent":
        return cls(kind=LEAVE, key=key, presences=tuple(presences or ()))


@dataclass(frozen=True)
class PresenceSnapshot:
    count: int
    connected: bool


def _presence_ref(presence) -> Optional[str]:
    if isinstance(presence, dict):
        return presence.get("presence_ref") or presence.get("phx_ref")
    return None


def apply_presence_event(membership: dict, event: PresenceEvent) -> dict:
    """Return the membership map that results from applying one channel notification.

    The input map is left untouched.
    """
    if event.kind == SYNC:
        return {key: list(presences) for key, presences in (event.state or {}).items() if presences}

    updated = {key: list(presences) for key, presences in membership.items()}

    if event.kind == JOIN:
        current = updated.get(event.key, [])
        for presence in event.presences:
            ref = _presence_ref(presence)
            # A re-join under the same ref replaces the earlier entry
            current = [p for p in current if ref is None or _presence_ref(p) != ref]
            current.append(presence)
        updated[event.key] = current
        return updated

    if event.kind == LEAVE:
        if event.key not in updated:
            return updated
        left_refs = {_presence_ref(p) for p in event.presences} - {None}
        if left_refs:
            remaining = [p for p in updated[event.key] if _presence_ref(p) not in left_refs]
        else:
            remaining = []
        if remaining:
            updated[event.key] = remaining
        else:
            del updated[event.key]
        return updated

    raise ValueError(f"Unknown presence event kind: {event.kind}")


def count_visitors(membership: dict) -> int:
    return len(membership)


class PresenceTracker:
    """
    Joins the shared presence channel and keeps a live count of distinct visitors.

    channel_factory(name, presence_key) must return a PresenceChannel. The
    tracker owns exactly one channel between start() and stop().
    """

    def __init__(self, channel_factory: Callable, identity: VisitorIdentityProvider, page: str = "/",
                 channel_name: str = PRESENCE_CHANNEL_NAME):
        self.channel_factory = channel_factory
        self.identity = identity
        self.page = page
        self.channel_name = channel_name
        self.membership: dict = {}
        self.count = 0
        self.connected = False
        self._channel = None
        self._listeners: list = []
        self._start_lock = asyncio.Lock()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    def snapshot(self) -> PresenceSnapshot:
        return PresenceSnapshot(count=self.count, connected=self.connected)

    def add_listener(self, callback: Callable[[PresenceSnapshot], None]) -> Callable[[], None]:
        """Register an observer of snapshot changes; returns a function that removes it."""
        self._listeners.append(callback)

        def remove():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return remove

    async def start(self) -> PresenceSnapshot:
        log = new_logger("presence_tracker_start")
        async with self._start_lock:
            if self._channel is not None:
                return self.snapshot()

            visitor_id = self.identity.init()
            channel = self.channel_factory(self.channel_name, visitor_id)
            channel.on_sync(lambda: self.handle_event(PresenceEvent.sync(channel.presence_state())))
            channel.on_join(lambda key, current, new: self.handle_event(PresenceEvent.join(key, new)))
            channel.on_leave(lambda key, current, left: self.handle_event(PresenceEvent.leave(key, left)))
            self._channel = channel

            log.info(f"Joining presence channel {self.channel_name} as {visitor_id}")
            try:
                status = await channel.subscribe(self._on_status_change)

                if status != SUBSCRIBED:
                    log.warning(f"Presence channel {self.channel_name} not connected: {status}")
                    self._set_connected(False)
                    return self.snapshot()

                self._set_connected(True)
                await channel.track({
                    "visitor_id": visitor_id,
                    "online_at": datetime.now(timezone.utc).isoformat(),
                    "page": self.page,
                })
            except Exception as e:
                log.warning(f"Presence announce failed, leaving {self.channel_name}: {type(e).__name__}: {str(e)}")
                await self.stop()
                raise
            log.info(f"Announced presence on {self.page}")
            return self.snapshot()

    async def stop(self) -> None:
        channel = self._channel
        if channel is None:
            return
        self._channel = None
        try:
            await channel.close()
        finally:
            self.membership = {}
            self.count = 0
            self._set_connected(False, force_notify=True)
            new_logger("presence_tracker_stop").info(f"Left presence channel {self.channel_name}")

    def handle_event(self, event: PresenceEvent) -> PresenceSnapshot:
        """Fold one channel notification into the membership map and recount."""
        self.membership = apply_presence_event(self.membership, event)
        self.count = count_visitors(self.membership)
        self._notify()
        return self.snapshot()

    def _on_status_change(self, status: str) -> None:
        if status != SUBSCRIBED and self.connected:
            new_logger("presence_tracker_status").warning(f"Presence channel {self.channel_name} is now {status}")
        self._set_connected(status == SUBSCRIBED)

    def _set_connected(self, connected: bool, force_notify: bool = False) -> None:
        changed = self.connected != connected
        self.connected = connected
        if changed or force_notify:
            self._notify()

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
