#!/usr/bin/env python3
"""
Complete Journal Client Demo

This script walks through the client against a running journal server:
1. Login through the resilient request pipeline
2. WebSocket connection with status and message subscribers
3. Saving an entry and listing entries over the socket
4. Client health report

Usage: python complete_demo.py
"""

import asyncio
import json
import logging
from datetime import datetime, timezone

from journal_client import ClientConfig, Envelope, JournalClient, RequestError

# Colors for terminal output
class Colors:
    HEADER = '\033[95m'
    OKBLUE = '\033[94m'
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'


DEMO_USER = {"email": "demo@journalapp.dev", "password": "DemoPassword123!"}


def print_message(envelope: Envelope):
    print(f"{Colors.OKBLUE}📨 {envelope.type}: {json.dumps(envelope.data or envelope.message)}{Colors.ENDC}")


def print_status(connected: bool):
    if connected:
        print(f"{Colors.OKGREEN}🔌 WebSocket connected{Colors.ENDC}")
    else:
        print(f"{Colors.WARNING}🔌 WebSocket disconnected{Colors.ENDC}")


async def login(client: JournalClient) -> bool:
    print(f"{Colors.OKCYAN}🔐 Logging in...{Colors.ENDC}")
    try:
        await client.auth.login(DEMO_USER["email"], DEMO_USER["password"])
    except RequestError as e:
        print(f"{Colors.FAIL}❌ Login failed ({e.kind.value}): {e.message}{Colors.ENDC}")
        return False
    print(f"{Colors.OKGREEN}✅ Login successful{Colors.ENDC}")
    return True


async def socket_round_trip(client: JournalClient):
    client.connection.on_status_change(print_status)
    client.connection.on_message(print_message)
    await client.connection.connect()
    await asyncio.sleep(1)

    entry = {
        "title": "Demo entry",
        "content": "Written by the journal client demo",
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    if await client.connection.save_entry(entry):
        print(f"{Colors.OKCYAN}📝 Sent SAVE_ENTRY{Colors.ENDC}")
    if await client.connection.request_entries():
        print(f"{Colors.OKCYAN}📚 Sent GET_ENTRIES{Colors.ENDC}")
    await asyncio.sleep(1)


async def show_health(client: JournalClient):
    health = await client.health_monitor.get_client_health()
    print(f"\n{Colors.HEADER}🔍 Journal Client Status: {health.status.value}{Colors.ENDC}")
    print("=" * 60)
    for component in health.components:
        color = Colors.OKGREEN if component.status.value == "healthy" else Colors.WARNING
        print(f"  {component.name:<16} {color}{component.status.value}{Colors.ENDC}")
    print()


async def main():
    logging.basicConfig(level=logging.WARNING)
    config = ClientConfig.from_env()

    print(f"{Colors.HEADER}📓 Journal Client Demo{Colors.ENDC}")
    print(f"   API: {config.base_url}")
    print(f"   Socket: {config.socket_url}\n")

    async with JournalClient(config) as client:
        await login(client)
        await socket_round_trip(client)
        await show_health(client)


if __name__ == "__main__":
    asyncio.run(main())
