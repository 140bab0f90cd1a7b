"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
UserStore and RoleStore are the repositories; _row_to_user / _row_to_role /
_row_to_reset_token are the mappers. The workflow and routes never touch SQL.

Both repositories share one Engine built by create_store_engine(), because
user_roles references roles and the two must live in the same database.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(users.email) is the authoritative guard against duplicate signups.
  The workflow checks exists_by_email() first for a friendly error, but two
  concurrent signups can both pass that check; the second INSERT then fails
  with IntegrityError, which the workflow maps to DuplicateIdentity.

  Password reset tokens are stored as HMAC hashes only (see auth/tokens.py).
  consume_reset_token() flips used_at with a conditional UPDATE so a token can
  be redeemed at most once even under concurrent requests.

DB path: auth/property_auth.db by default (see core/config.py).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    select,
)
from sqlalchemy.engine import Connection, Engine

from auth.models import PasswordResetToken, Role, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(100), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("phone", String(50)),
    Column("profile_image", Text),
    Column("created_at", String(32), nullable=False),
)

_roles = Table(
    "roles",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False, unique=True),
)

_user_roles = Table(
    "user_roles",
    _metadata,
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id"), primary_key=True),
)

_reset_tokens = Table(
    "password_reset_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("token_hash", String(64), nullable=False, unique=True),  # HMAC-SHA256 hex
    Column("expires_at", String(32), nullable=False),
    Column("used_at", String(32)),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def create_store_engine(db_url: str) -> Engine:
    """Build the Engine shared by UserStore and RoleStore and create the schema.

    create_all() is idempotent, so this is safe to call on every startup.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    _metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _load_role_names(conn: Connection, user_id: int) -> set[str]:
    rows = conn.execute(
        select(_roles.c.name)
        .select_from(_user_roles.join(_roles, _user_roles.c.role_id == _roles.c.id))
        .where(_user_roles.c.user_id == user_id)
    ).fetchall()
    return {r.name for r in rows}


# ---------------------------------------------------------------------------
# Role repository
# ---------------------------------------------------------------------------


class RoleStore:
    """Repository for the fixed set of Role records.

    Usage:
        engine = create_store_engine("sqlite:///auth.db")
        roles = RoleStore(engine)
        roles.seed(["ROLE_TENANT", "ROLE_OWNER"])
        roles.find_by_name("ROLE_TENANT")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def find_by_name(self, name: str) -> Role | None:
        """Look up a role by exact name (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_roles.select().where(_roles.c.name == name)).fetchone()
        return _row_to_role(row) if row is not None else None

    def list_roles(self) -> list[Role]:
        with self.engine.connect() as conn:
            rows = conn.execute(_roles.select().order_by(_roles.c.name)).fetchall()
        return [_row_to_role(r) for r in rows]

    def seed(self, names: list[str]) -> int:
        """Insert any of the given role names that do not exist yet.

        Idempotent -- safe to call on every startup. Returns the number of
        roles actually inserted.
        """
        with self.engine.begin() as conn:
            existing = {r.name for r in conn.execute(select(_roles.c.name)).fetchall()}
            missing = sorted(set(names) - existing)
            if missing:
                conn.execute(_roles.insert(), [{"name": n} for n in missing])
        return len(missing)


# ---------------------------------------------------------------------------
# User repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and PasswordResetToken entities.

    Usage:
        store = UserStore(engine)
        saved = store.save(User(email="a@b.io", name="Ann", hashed_password=hash_password("secret"),
                                roles={"ROLE_TENANT"}))
        user = store.find_by_email("a@b.io")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def exists_by_email(self, email: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.email == email)).fetchone()
        return row is not None

    def find_by_email(self, email: str) -> User | None:
        """Look up a user (with role names) by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
            if row is None:
                return None
            return _row_to_user(row, _load_role_names(conn, row.id))

    def save(self, user: User) -> User:
        """Insert a new user and its role links in one transaction.

        Returns the stored record with id and created_at filled in.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        Raises ValueError if any of user.roles is not a known role name. In
        both cases the transaction is rolled back and nothing is written.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=user.email,
                    name=user.name,
                    hashed_password=user.hashed_password,
                    phone=user.phone,
                    profile_image=user.profile_image,
                    created_at=_now_iso(),
                )
            )
            user_id = result.inserted_primary_key[0]
            if user.roles:
                role_rows = conn.execute(
                    select(_roles.c.id, _roles.c.name).where(_roles.c.name.in_(sorted(user.roles)))
                ).fetchall()
                unknown = set(user.roles) - {r.name for r in role_rows}
                if unknown:
                    raise ValueError(f"Unknown roles: {sorted(unknown)!r}")
                conn.execute(
                    _user_roles.insert(),
                    [{"user_id": user_id, "role_id": r.id} for r in role_rows],
                )
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
            return _row_to_user(row, _load_role_names(conn, user_id))

    # ------------------------------------------------------------------
    # Password reset tokens
    # ------------------------------------------------------------------

    def create_reset_token(self, token: PasswordResetToken) -> int:
        """Insert a reset token record and return its ID."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _reset_tokens.insert().values(
                    user_id=token.user_id,
                    token_hash=token.token_hash,
                    expires_at=token.expires_at,
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_reset_token_by_hash(self, token_hash: str) -> PasswordResetToken | None:
        """Look up a reset token by its HMAC hash. O(1) via UNIQUE index.

        Returns used and expired tokens too; the caller decides validity.
        """
        with self.engine.connect() as conn:
            row = conn.execute(_reset_tokens.select().where(_reset_tokens.c.token_hash == token_hash)).fetchone()
        return _row_to_reset_token(row) if row is not None else None

    def consume_reset_token(self, token_id: int, hashed_password: str) -> bool:
        """Mark a reset token used and set its owner's new password hash.

        Both writes happen in one transaction. The used_at IS NULL condition
        makes redemption single-use: a second call (or a concurrent one that
        lost the race) updates no token row and returns False without touching
        the password.
        """
        with self.engine.begin() as conn:
            row = conn.execute(
                select(_reset_tokens.c.user_id).where(_reset_tokens.c.id == token_id)
            ).fetchone()
            if row is None:
                return False
            result = conn.execute(
                _reset_tokens.update()
                .where((_reset_tokens.c.id == token_id) & (_reset_tokens.c.used_at.is_(None)))
                .values(used_at=_now_iso())
            )
            if result.rowcount == 0:
                return False
            conn.execute(_users.update().where(_users.c.id == row.user_id).values(hashed_password=hashed_password))
        return True


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row, roles: set[str]) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        phone=row.phone,
        profile_image=row.profile_image,
        roles=roles,
        created_at=row.created_at,
    )


def _row_to_role(row) -> Role:
    return Role(id=row.id, name=row.name)


def _row_to_reset_token(row) -> PasswordResetToken:
    return PasswordResetToken(
        id=row.id,
        user_id=row.user_id,
        token_hash=row.token_hash,
        expires_at=row.expires_at,
        used_at=row.used_at,
        created_at=row.created_at,
    )
