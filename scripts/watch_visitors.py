import argparse
import asyncio
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from services.presence_service import PresenceTracker
from utils.supabase_realtime import create_realtime_client, supabase_channel_factory
from utils.visitor_identity import JsonFileStorage, VisitorIdentityProvider

"""
Join the visitor presence channel and print the live visitor count whenever it changes.

Example usage:
    python scripts/watch_visitors.py --page /admin --identity-file ~/.agency-site/identity.json
"""

def print_snapshot(snapshot):
    if snapshot.connected:
        print(f"{snapshot.count} live visitors")
    else:
        print("not connected")

async def watch(page: str, identity_file: str):
    client = await create_realtime_client()
    identity = VisitorIdentityProvider(JsonFileStorage(identity_file))
    tracker = PresenceTracker(supabase_channel_factory(client), identity, page=page)
    tracker.add_listener(print_snapshot)
    async with tracker:
        if not tracker.connected:
            return 1
        # Runs until interrupted
        await asyncio.Event().wait()
    return 0

def main():
    load_dotenv()
    parser = argparse.ArgumentParser(description="Watch live visitors on the site.")
    parser.add_argument("--page", default="/admin", help="Page reported in this watcher's presence record")
    parser.add_argument("--identity-file", default=os.path.expanduser("~/.agency-site/identity.json"),
                        help="Where this watcher's visitor id is kept")
    args = parser.parse_args()
    try:
        sys.exit(asyncio.run(watch(args.page, args.identity_file)))
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    main()
