#!/usr/bin/env python3
"""
Quick script to check that the journal server is up and accepts logins
"""

import logging
import os
import sys

import requests

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("check_server_status")

SOCKET_SERVER_URL = os.environ.get("JOURNAL_HEALTH_URL", "http://localhost:8080")
API_URL = os.environ.get("JOURNAL_API_URL", "http://localhost:3001/api").rstrip("/")
TEST_USER = {
    "email": os.environ.get("JOURNAL_TEST_EMAIL", "test@example.com"),
    "password": os.environ.get("JOURNAL_TEST_PASSWORD", "password123"),
}


def check_health() -> bool:
    try:
        response = requests.get(f"{SOCKET_SERVER_URL}/health", timeout=10)
    except requests.RequestException as e:
        print(f"❌ Health check failed: {e}")
        return False

    try:
        body = response.json()
    except ValueError:
        body = {}

    if response.status_code == 200 and isinstance(body, dict) and body.get("status") == "healthy":
        print(f"✅ Server healthy at {SOCKET_SERVER_URL}")
        return True

    print(f"❌ Unexpected health response: {response.status_code}")
    print(response.text)
    return False


def check_login() -> bool:
    try:
        response = requests.post(f"{API_URL}/auth/login", json=TEST_USER, timeout=10)
    except requests.RequestException as e:
        print(f"❌ Login request failed: {e}")
        return False

    try:
        body = response.json()
    except ValueError:
        body = {}

    if response.status_code == 200 and isinstance(body, dict) and body.get("token"):
        print(f"✅ Login accepted for {TEST_USER['email']}, token received")
        return True

    print(f"❌ Login rejected: {response.status_code}")
    print(response.text)
    return False


def check_server_status(with_login: bool = True) -> int:
    healthy = check_health()
    logged_in = check_login() if with_login else True
    logger.info(f"health={healthy} login={logged_in}")
    return 0 if healthy and logged_in else 1


if __name__ == "__main__":
    sys.exit(check_server_status(with_login="--no-login" not in sys.argv))
