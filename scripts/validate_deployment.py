"""
Post-Deploy Smoke Test Script.

Runs against a live server:
1. Health Check
2. Registration + self role lookup (token minted with the shared secret)
3. Live update trigger

Usage:
    python -m scripts.validate_deployment [base_url]
"""

import sys
import uuid

import httpx

from backend.app.core.jwt import create_identity_token

BASE_URL = "http://127.0.0.1:3000"


def print_step(step, msg):
    print(f"[{step}] {msg}")


def fail(msg):
    print(f"❌ FAILURE: {msg}")
    sys.exit(1)


def success(msg):
    print(f"✅ {msg}")


def main(base_url: str = BASE_URL):
    print("🚀 Starting Deployment Validation...")

    with httpx.Client(base_url=base_url, timeout=10.0) as client:
        # 1. Health Check
        print_step("PRE-DEPLOY", "Checking /health...")
        try:
            response = client.get("/health")
        except httpx.HTTPError as e:
            fail(f"Health check died: {e}")
        if response.status_code != 200:
            fail(f"Health check returned {response.status_code}")
        success(f"Health: {response.json()}")

        # 2. Register a throwaway customer and look up its role
        print_step("SMOKE", "Registering smoke-test user...")
        email = f"smoke-{uuid.uuid4().hex[:8]}@example.com"
        response = client.post("/users", json={"email": email, "name": "Smoke Test"})
        if response.status_code != 201:
            fail(f"Registration failed: {response.status_code} {response.text}")

        headers = {"Authorization": f"Bearer {create_identity_token(email)}"}
        response = client.get(f"/users/{email}/role", headers=headers)
        if response.status_code != 200 or response.json().get("role") != "customer":
            fail(f"Role lookup failed: {response.status_code} {response.text}")
        success(f"Registered {email} as customer")

        # 3. Live update trigger
        print_step("SMOKE", "Triggering live update broadcast...")
        response = client.post("/update-status")
        if response.status_code != 200:
            fail(f"Broadcast trigger failed: {response.status_code}")
        success("Broadcast accepted")

    success("Deployment Validation Passed!")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else BASE_URL)
