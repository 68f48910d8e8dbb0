"""
Grant or revoke the admin role for an existing account
Usage: python promote_admin.py <username-or-email> [--revoke]
"""
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from ouiimi.database import SessionLocal
from ouiimi.domain.accounts.service import AccountService

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def promote(identifier: str, revoke: bool = False) -> None:
    db = SessionLocal()
    try:
        user = AccountService(db).set_admin_role(identifier, is_admin=not revoke)
    finally:
        db.close()
    logger.info(f"✅ {user.username} ({user.email}) is now '{user.role}'")


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if a != "--revoke"]
    if len(args) != 1:
        logger.error("Usage: python promote_admin.py <username-or-email> [--revoke]")
        sys.exit(1)

    try:
        promote(args[0], revoke="--revoke" in sys.argv)
    except LookupError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)
