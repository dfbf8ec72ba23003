# tests/conftest.py
from __future__ import annotations

import os
import tempfile
import time
from collections.abc import Callable, Generator, Iterator
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="social-desk-tests-"))
os.environ.setdefault("FIREBASE_PROJECT_ID", "test-project")

from social_desk.db.session import Base
from social_desk.db.session import get_db as app_get_session
from social_desk.db.time import utcnow
from social_desk.main import app as fastapi_app
from social_desk.models import PostStatus, SocialPost, UserPermission
from social_desk.repositories import PostRepository
from social_desk.services.file_store import FileStore, get_file_store
from social_desk.services.identity import (
    IdentityVerifier,
    ServiceAccount,
    StaticKeySource,
    TokenExchangeService,
    get_identity_verifier,
    get_token_exchange_service,
)
from social_desk.services.lifecycle import PostLifecycle
from social_desk.services.session import Capabilities, Identity, SessionContext
from tests.helpers import (
    ADMIN_UID,
    EDITOR_UID,
    ID_TOKEN_KID,
    ISSUER,
    OTHER_EDITOR_UID,
    PNG_BYTES,
    PROJECT_ID,
    USER_PERMISSIONS,
)

TEST_DB_URL = "sqlite://"


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(tmp_path: Path) -> FileStore:
    file_store = FileStore(tmp_path / "uploads")
    file_store.ensure_root()
    return file_store


@pytest.fixture()
def repo(db_session: Session) -> PostRepository:
    return PostRepository(db_session)


@pytest.fixture()
def lifecycle(repo: PostRepository, store: FileStore) -> PostLifecycle:
    return PostLifecycle(repo, store, delete_concurrency=2)


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def public_key_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    return rsa_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture()
def verifier(public_key_pem: str) -> IdentityVerifier:
    return IdentityVerifier(PROJECT_ID, StaticKeySource({ID_TOKEN_KID: public_key_pem}))


@pytest.fixture()
def service_account(private_key_pem: str) -> ServiceAccount:
    return ServiceAccount(
        client_email=f"signer@{PROJECT_ID}.iam.gserviceaccount.com",
        private_key=private_key_pem,
        private_key_id="service-account-kid",
        project_id=PROJECT_ID,
    )


@pytest.fixture()
def token_exchange(
    verifier: IdentityVerifier,
    service_account: ServiceAccount,
) -> TokenExchangeService:
    return TokenExchangeService(verifier, service_account)


@pytest.fixture()
def make_id_token(private_key_pem: str) -> Callable[..., str]:
    """Return a factory for ID tokens signed like the identity provider's."""

    def _make(uid: str, *, kid: str = ID_TOKEN_KID, **overrides: Any) -> str:
        now = int(time.time())
        claims: dict[str, Any] = {
            "iss": ISSUER,
            "aud": PROJECT_ID,
            "sub": uid,
            "iat": now,
            "auth_time": now,
            "exp": now + 3600,
            "email": f"{uid}@example.com",
        }
        claims.update(overrides)
        return jwt.encode(claims, private_key_pem, algorithm="RS256", headers={"kid": kid})

    return _make


@pytest.fixture()
def users(db_session: Session) -> dict[str, UserPermission]:
    records = {
        uid: UserPermission(uid=uid, email=f"{uid}@example.com", permissions=permissions)
        for uid, permissions in USER_PERMISSIONS.items()
    }
    db_session.add_all(records.values())
    db_session.commit()
    return records


@pytest.fixture()
def auth_headers(
    users: dict[str, UserPermission],
    make_id_token: Callable[..., str],
) -> Callable[[str], dict[str, str]]:
    def _headers(uid: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_id_token(uid)}"}

    return _headers


def _session_for(uid: str) -> SessionContext:
    permissions = USER_PERMISSIONS[uid]
    return SessionContext(
        identity=Identity(uid=uid, email=f"{uid}@example.com"),
        capabilities=Capabilities(
            social=bool(permissions.get("social")),
            social_admin=permissions.get("socialAdmin") is True,
        ),
    )


@pytest.fixture()
def editor_session() -> SessionContext:
    return _session_for(EDITOR_UID)


@pytest.fixture()
def other_editor_session() -> SessionContext:
    return _session_for(OTHER_EDITOR_UID)


@pytest.fixture()
def admin_session() -> SessionContext:
    return _session_for(ADMIN_UID)


@pytest.fixture()
def make_post(db_session: Session, store: FileStore) -> Callable[..., SocialPost]:
    """Return a factory that persists a post and writes its files to disk."""

    counter = iter(range(1, 10_000))

    def _make(
        *,
        status: PostStatus = PostStatus.PENDING,
        owner: str = EDITOR_UID,
        filenames: tuple[str, ...] = ("photo.png",),
        title: str = "Spring launch",
        content: str = "New menu items arrive this weekend.",
    ) -> SocialPost:
        number = next(counter)
        post_id = f"post{number:04d}"
        files = []
        for name in filenames:
            staged = store.stage(PNG_BYTES, name, "image/png")
            stored = store.commit(staged, post_id, f"{post_id}_{number}_{name}")
            files.append(
                {
                    "filename": stored.filename,
                    "originalName": name,
                    "type": "image/png",
                    "size": stored.size,
                    "uploadedAt": utcnow().isoformat(),
                }
            )
        post = SocialPost(
            id=post_id,
            title=title,
            content=content,
            scheduled_date=utcnow() + timedelta(days=number),
            status=status,
            uploaded_by={"uid": owner, "email": f"{owner}@example.com"},
            uploaded_at=utcnow() + timedelta(seconds=number),
            files=files,
            platforms=["instagram"],
            change_requests=[],
            edits=[],
        )
        db_session.add(post)
        db_session.commit()
        return post

    return _make


@pytest.fixture()
def app(
    db_session: Session,
    store: FileStore,
    verifier: IdentityVerifier,
    token_exchange: TokenExchangeService,
) -> Iterator[FastAPI]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides = {
        app_get_session: _get_session_override,
        get_file_store: lambda: store,
        get_identity_verifier: lambda: verifier,
        get_token_exchange_service: lambda: token_exchange,
    }
    fastapi_app.dependency_overrides.update(overrides)
    try:
        yield fastapi_app
    finally:
        for dependency in overrides:
            fastapi_app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
