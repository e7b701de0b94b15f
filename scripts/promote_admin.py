#!/usr/bin/env python3
"""Promote an existing user to moderator or admin.

Usage:
  ./venv/bin/python scripts/promote_admin.py --email someone@example.com
  ./venv/bin/python scripts/promote_admin.py --email someone@example.com --role moderator
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Optional

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from e_estudiantes.repositories import users_repo  # noqa: E402
from e_estudiantes.services import auth_service  # noqa: E402


def find_uid_by_email(db, email: str) -> Optional[str]:
    docs = users_repo.find_by_email(db, email.strip().lower())
    for doc in docs:
        return doc.id
    return None


def main() -> int:
    parser = argparse.ArgumentParser(description="Promote a user found by email.")
    parser.add_argument("--email", required=True, help="Email of the user to promote")
    parser.add_argument("--role", default=auth_service.ROLE_ADMIN, choices=[auth_service.ROLE_MODERATOR, auth_service.ROLE_ADMIN])
    args = parser.parse_args()

    from e_estudiantes import runtime

    if runtime.db is None:
        print("Firestore is not configured (set FIREBASE_CREDENTIALS or add firebase-credentials.json).")
        return 2

    uid = find_uid_by_email(runtime.db, args.email)
    if not uid:
        print(f"No user found with email {args.email}. The user must sign in once first.")
        return 1

    auth_service.set_user_role(uid, args.role, db=runtime.db)
    print(f"Promoted {args.email} ({uid}) to {args.role}.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
