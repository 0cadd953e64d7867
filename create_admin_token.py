"""
Create Admin Token Script
Mint a bearer token with the admin claim for local development and testing.
Token issuance in production belongs to the authentication service.
"""

import argparse
import sys
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from alumni_api.core.config import validate_settings  # noqa: E402
from alumni_api.core.exceptions import ConfigurationError  # noqa: E402
from alumni_api.core.security import create_access_token  # noqa: E402


def mint_admin_token(subject: str = "admin", expires_minutes: Optional[int] = None) -> str:
    """Return a signed token carrying ``role: admin`` for ``subject``."""
    expires_delta = timedelta(minutes=expires_minutes) if expires_minutes else None
    return create_access_token({"sub": subject, "role": "admin", "is_admin": True}, expires_delta)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Mint an admin bearer token")
    parser.add_argument("--subject", default="admin", help="Token subject (default: admin)")
    parser.add_argument("--minutes", type=int, default=None, help="Lifetime in minutes (default: ACCESS_TOKEN_EXPIRE_MINUTES)")
    args = parser.parse_args(argv)

    try:
        validate_settings()
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print(mint_admin_token(args.subject, args.minutes))
    return 0


if __name__ == "__main__":
    sys.exit(main())
