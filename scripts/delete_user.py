"""
Delete a user and everything attached to the account.

Safe to run again on the same user after an interrupted run; steps that
already completed find nothing left to delete.

    python -m scripts.delete_user --email someone@example.com
    python -m scripts.delete_user --user-id 3f0c...
"""
import argparse
import logging
import sys

from penpal.db.session import SessionLocal
from penpal.modules.auth.services.auth import get_user_by_email
from penpal.modules.moderation.services.cascade import delete_account_cascade

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("delete-user")

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Delete a user account and all of its data")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--email", help="Email of the user to delete")
    target.add_argument("--user-id", help="ID of the user to delete")
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        user_id = args.user_id
        if args.email:
            user = get_user_by_email(db, args.email)
            if not user:
                logger.error(f"No user found with email: {args.email}")
                return 1
            user_id = user.id

        removed = delete_account_cascade(db, user_id)
        for step, count in removed.items():
            logger.info(f"{step}: {count}")
        logger.info(f"Deleted user {user_id}")
        return 0
    finally:
        db.close()

if __name__ == "__main__":
    sys.exit(main())
