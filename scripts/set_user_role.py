#!/usr/bin/env python3
"""Set a user's role (idempotent). Operator equivalent of the admin console edit.

Usage:
  python scripts/set_user_role.py --email someone@school.edu --role ADMIN
"""

import sys
import argparse
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.portal.accounts import find_by_email, set_role
from app.portal.audit import record_event
from app.portal.models import ROLES
from scripts._db_utils import script_session


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--role", required=True, choices=ROLES, help="Role to assign")
    args = parser.parse_args()

    with script_session() as s:
        user = find_by_email(s, args.email)
        if not user:
            print(f"User not found: {args.email}")
            return
        if user.role == args.role:
            print(f"User already has role {args.role}: {args.email}")
            return
        before = user.role
        set_role(user, args.role)
        record_event(
            s,
            actor=None,
            action="user.set_role",
            entity_type="User",
            entity_id=str(user.id),
            reason="scripts/set_user_role.py",
            metadata={"before": before, "after": user.role},
        )
        print(f"Role for {args.email}: {before} -> {user.role} (active sessions keep their old role until re-login)")


if __name__ == "__main__":
    main()
