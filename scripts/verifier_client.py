"""
Postcode Verifier Client

Command-line client for the Postcode Verifier API.

Usage:
    python verifier_client.py register <email> <password>
    python verifier_client.py validate <email> <password> <postcode> <suburb> <state>
    python verifier_client.py history <email> <password> [--limit N]
"""

import json
import sys
from typing import Any, Dict

import httpx


class VerifierClient:
    """
    Client for the Postcode Verifier API.

    Logging in stores the returned token as a Bearer header on the
    underlying httpx client, so later calls are authenticated.
    """

    def __init__(self, api_url: str, timeout: float = 30.0):
        """
        Args:
            api_url: Base URL of the Postcode Verifier API
            timeout: Request timeout in seconds
        """
        self.api_url = api_url.rstrip('/')
        self.client = httpx.Client(base_url=self.api_url, timeout=timeout)

    def register(self, username: str, password: str) -> Dict[str, Any]:
        """Create an account."""
        response = self.client.post(
            "/v1/auth/register",
            json={"username": username, "password": password}
        )
        response.raise_for_status()
        return response.json()

    def login(self, username: str, password: str) -> Dict[str, Any]:
        """
        Start a session.

        Raises:
            httpx.HTTPStatusError: On invalid credentials
        """
        response = self.client.post(
            "/v1/auth/login",
            json={"username": username, "password": password}
        )
        response.raise_for_status()
        token = response.json()
        self.client.headers["Authorization"] = f"Bearer {token['access_token']}"
        return token

    def validate(self, postcode: str, suburb: str, state: str) -> Dict[str, Any]:
        """Validate an address. Requires a prior login."""
        response = self.client.post(
            "/v1/validate",
            json={"postcode": postcode, "suburb": suburb, "state": state}
        )
        response.raise_for_status()
        return response.json()

    def history(self, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        """List past validation attempts. Requires a prior login."""
        response = self.client.get(
            "/v1/verify-logs",
            params={"limit": limit, "offset": offset}
        )
        response.raise_for_status()
        return response.json()

    def logout(self) -> None:
        """End the session."""
        self.client.post("/v1/auth/logout").raise_for_status()
        self.client.headers.pop("Authorization", None)

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Postcode Verifier API client")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")

    subparsers = parser.add_subparsers(dest="command", required=True)

    register_parser = subparsers.add_parser("register", help="Create an account")
    register_parser.add_argument("username")
    register_parser.add_argument("password")

    validate_parser = subparsers.add_parser("validate", help="Validate an address")
    validate_parser.add_argument("username")
    validate_parser.add_argument("password")
    validate_parser.add_argument("postcode")
    validate_parser.add_argument("suburb")
    validate_parser.add_argument("state")

    history_parser = subparsers.add_parser("history", help="Show past validations")
    history_parser.add_argument("username")
    history_parser.add_argument("password")
    history_parser.add_argument("--limit", type=int, default=20)

    args = parser.parse_args()

    with VerifierClient(args.api_url) as client:
        try:
            if args.command == "register":
                result = client.register(args.username, args.password)
            else:
                client.login(args.username, args.password)
                if args.command == "validate":
                    result = client.validate(args.postcode, args.suburb, args.state)
                else:
                    result = client.history(limit=args.limit)
                client.logout()
        except httpx.HTTPStatusError as e:
            print(f"❌ {e.response.status_code}: {e.response.text}")
            sys.exit(1)
        except httpx.HTTPError as e:
            print(f"❌ Request failed: {e}")
            sys.exit(1)

    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
