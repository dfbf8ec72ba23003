# src/social_desk/scripts/manage.py
"""Administrative commands: create tables and manage user permission records."""
from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from social_desk.core.logging import setup_logging
from social_desk.db.session import SessionLocal, create_tables
from social_desk.models import UserPermission
from social_desk.services.session import (
    SOCIAL_ADMIN_FLAG,
    SOCIAL_FLAG,
    resolve_capabilities,
)


def grant(
    db: Session,
    uid: str,
    *,
    email: str | None = None,
    display_name: str | None = None,
    admin: bool = False,
) -> UserPermission:
    """Give `uid` base access, plus elevated access when `admin` is set."""
    record = db.get(UserPermission, uid)
    if record is None:
        record = UserPermission(uid=uid, permissions={})
        db.add(record)
    if email is not None:
        record.email = email
    if display_name is not None:
        record.display_name = display_name

    permissions = dict(record.permissions or {})
    permissions[SOCIAL_FLAG] = True
    if admin:
        permissions[SOCIAL_ADMIN_FLAG] = True
    record.permissions = permissions
    db.commit()
    return record


def revoke(db: Session, uid: str, *, admin_only: bool = False) -> UserPermission | None:
    """Withdraw elevated access, or all access unless `admin_only` is set."""
    record = db.get(UserPermission, uid)
    if record is None:
        return None
    permissions = dict(record.permissions or {})
    permissions[SOCIAL_ADMIN_FLAG] = False
    if not admin_only:
        permissions[SOCIAL_FLAG] = False
    record.permissions = permissions
    db.commit()
    return record


def list_users(db: Session) -> list[UserPermission]:
    return list(db.scalars(select(UserPermission).order_by(UserPermission.uid)))


def _describe(record: UserPermission) -> str:
    capabilities = resolve_capabilities(record.permissions)
    role = "admin" if capabilities.is_admin else "editor" if capabilities.is_editor else "none"
    return f"{record.uid}\t{record.email or '-'}\t{role}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage the Social Desk database")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create all tables that do not exist yet.")

    grant_parser = commands.add_parser("grant", help="Grant access to a user.")
    grant_parser.add_argument("uid")
    grant_parser.add_argument("--email", default=None)
    grant_parser.add_argument("--name", default=None, help="Display name")
    grant_parser.add_argument("--admin", action="store_true", help="Also grant admin access.")

    revoke_parser = commands.add_parser("revoke", help="Revoke access from a user.")
    revoke_parser.add_argument("uid")
    revoke_parser.add_argument(
        "--admin-only",
        action="store_true",
        help="Only withdraw admin access and keep base access.",
    )

    commands.add_parser("list", help="List users with permission records.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    if args.command == "init-db":
        create_tables()
        print("[manage] tables created")
        return 0

    with SessionLocal() as db:
        if args.command == "grant":
            record = grant(db, args.uid, email=args.email, display_name=args.name, admin=args.admin)
            print(f"[manage] {_describe(record)}")
        elif args.command == "revoke":
            record = revoke(db, args.uid, admin_only=args.admin_only)
            if record is None:
                print(f"[manage] ERROR: no permission record for {args.uid}", file=sys.stderr)
                return 1
            print(f"[manage] {_describe(record)}")
        else:
            for record in list_users(db):
                print(_describe(record))
    return 0


if __name__ == "__main__":
    sys.exit(main())
