"""Shared fixtures: a fresh in-memory database per test case and a user factory."""

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings, get_settings
from app.models import Base, RoleNames, User
from app.services.credential_store import UserStore

STRONG_PASSWORD = "Passw0rd!"


def make_session() -> Session:
    """New in-memory SQLite database with every table and the built-in roles."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    UserStore(session, get_settings()).ensure_roles(RoleNames.ALL)
    return session


def make_settings(**overrides: object) -> Settings:
    return get_settings().model_copy(update=overrides)


def create_user(
    store: UserStore,
    user_name: str = "jane",
    email: str = "jane@example.com",
    password: str = STRONG_PASSWORD,
    role: str | None = RoleNames.USER,
) -> User:
    user = User(first_name="Jane", last_name="Doe", user_name=user_name, email=email)
    store.create(user, password)
    if role is not None:
        store.assign_role(user, role)
    return user
