# tests/services/test_admin_cli.py
"""Tests for the administrative permission commands."""

from social_desk.scripts.manage import build_parser, grant, list_users, revoke
from social_desk.services.session import resolve_capabilities


def test_grant_creates_editor(db_session):
    record = grant(db_session, "new-user", email="new@example.com")

    capabilities = resolve_capabilities(record.permissions)
    assert capabilities.is_editor
    assert record.email == "new@example.com"


def test_grant_admin_keeps_existing_flags(db_session, users):
    record = grant(db_session, "editor-uid", admin=True)

    assert record.permissions["socialAdmin"] is True
    assert resolve_capabilities(record.permissions).is_admin


def test_revoke_admin_only(db_session, users):
    record = revoke(db_session, "admin-uid", admin_only=True)

    capabilities = resolve_capabilities(record.permissions)
    assert capabilities.is_editor
    assert not capabilities.is_admin


def test_revoke_all_access(db_session, users):
    record = revoke(db_session, "editor-uid")
    assert not resolve_capabilities(record.permissions).has_access


def test_revoke_unknown_user(db_session):
    assert revoke(db_session, "nobody") is None


def test_list_users_sorted(db_session, users):
    assert [record.uid for record in list_users(db_session)] == sorted(users)


def test_parser_accepts_grant_flags():
    args = build_parser().parse_args(["grant", "u1", "--email", "u1@example.com", "--admin"])
    assert args.command == "grant"
    assert args.admin is True
