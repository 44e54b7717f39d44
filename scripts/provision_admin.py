"""Script to provision the initial SUPER_ADMIN account."""

import asyncio
import os
import sys

from barshift.core.exceptions import ConflictException
from barshift.database import AsyncSessionLocal, engine
from barshift.services.provisioning import provision_super_admin

USAGE = "Usage: python scripts/provision_admin.py <email> [name]"


async def main(email: str, name: str) -> int:
    """Provision the administrator and report the outcome."""
    try:
        async with AsyncSessionLocal() as session:
            admin, created = await provision_super_admin(session, email, name)
    except ConflictException as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1
    finally:
        await engine.dispose()

    if created:
        print(f"✓ Created SUPER_ADMIN {admin['email']} ({admin['id']})")
    else:
        print(f"✓ SUPER_ADMIN already provisioned: {admin['email']} ({admin['id']})")
    return 0


if __name__ == "__main__":
    admin_email = sys.argv[1] if len(sys.argv) > 1 else os.getenv("ADMIN_EMAIL")
    admin_name = sys.argv[2] if len(sys.argv) > 2 else os.getenv("ADMIN_NAME", "Administrator")
    if not admin_email:
        print(USAGE)
        sys.exit(2)
    sys.exit(asyncio.run(main(admin_email, admin_name)))
