import os
import asyncio
from typing import Callable, Optional
from supabase import acreate_client, AsyncClient
from utils.logger_factory import new_logger

PRESENCE_CHANNEL_NAME = "online-visitors"

# Subscription statuses reported by the realtime transport
SUBSCRIBED = "SUBSCRIBED"
CHANNEL_ERROR = "CHANNEL_ERROR"
TIMED_OUT = "TIMED_OUT"
CLOSED = "CLOSED"


def status_name(status) -> str:
    """Normalise a transport status (enum member or plain string) to its name."""
    return getattr(status, "value", status)


def realtime_credentials() -> tuple:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_ANON_KEY")
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment variables.")
    return url, key


async def create_realtime_client() -> AsyncClient:
    url, key = realtime_credentials()
    return await acreate_client(url, key)


class PresenceChannel:
    """
    A presence channel on the realtime backend.

    Handlers registered with on_sync/on_join/on_leave are called by the
    transport in delivery order. presence_state() returns the channel's
    current membership as {key: [presence, ...]}.
    """

    def on_sync(self, handler: Callable[[], None]) -> None:
        raise NotImplementedError

    def on_join(self, handler: Callable[[str, list, list], None]) -> None:
        raise NotImplementedError

    def on_leave(self, handler: Callable[[str, list, list], None]) -> None:
        raise NotImplementedError

    def presence_state(self) -> dict:
        raise NotImplementedError

    async def subscribe(self, on_status: Optional[Callable[[str], None]] = None) -> str:
        """Join the channel and return the first status reported by the transport.

        Later status changes are forwarded to on_status.
        """
        raise NotImplementedError

    async def track(self, payload: dict) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError


class SupabasePresenceChannel(PresenceChannel):
    def __init__(self, client: AsyncClient, name: str, presence_key: str):
        self.client = client
        self.name = name
        self.presence_key = presence_key
        self.channel = client.channel(name, {
            "config": {
                "broadcast": {"ack": False, "self": False},
                "presence": {"key": presence_key},
                "private": False,
            }
        })

    def on_sync(self, handler):
        self.channel.on_presence_sync(handler)

    def on_join(self, handler):
        self.channel.on_presence_join(handler)

    def on_leave(self, handler):
        self.channel.on_presence_leave(handler)

    def presence_state(self) -> dict:
        return dict(self.channel.presence_state())

    async def subscribe(self, on_status=None) -> str:
        log = new_logger("presence_channel_subscribe")
        first_status = asyncio.get_running_loop().create_future()

        def _callback(status, err=None):
            name = status_name(status)
            if err is not None:
                log.warning(f"Channel {self.name} reported {name}: {err}")
            if not first_status.done():
                first_status.set_result(name)
            elif on_status is not None:
                on_status(name)

        try:
            await self.channel.subscribe(_callback)
        except Exception as e:
            log.warning(f"Failed to subscribe to channel {self.name}: {type(e).__name__}: {str(e)}")
            return CHANNEL_ERROR
        return await first_status

    async def track(self, payload: dict) -> None:
        await self.channel.track(payload)

    async def close(self) -> None:
        await self.client.remove_channel(self.channel)


def supabase_channel_factory(client: AsyncClient):
    """Build the (name, presence_key) -> PresenceChannel factory the tracker expects."""
    def factory(name: str, presence_key: str) -> PresenceChannel:
        return SupabasePresenceChannel(client, name, presence_key)
    return factory
