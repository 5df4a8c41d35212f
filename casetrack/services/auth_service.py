"""
Email/password authentication.

Identity is the email address. ``AuthService`` never raises past its public
methods: a directory outage and a wrong password both come back as a failed
``AuthResult`` (with different messages), and every attempt is logged as a
security event.
"""

import threading
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from casetrack.utils.logging_config import get_logger, log_security_event
from casetrack.utils.security import RateLimiter, hash_password, verify_password

ROLE_USER = "user"

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass
class User:
    id: str
    email: str
    display_name: str = ""
    role: str = ROLE_USER

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StoredUser:
    """Directory row: the public user plus its password material"""

    user: User
    password_hash: str
    salt: str


@dataclass
class AuthResult:
    success: bool
    user: Optional[User] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "user": self.user.to_dict() if self.user else None,
            "error": self.error,
        }


class UserAlreadyExists(Exception):
    pass


class UserDirectory:
    """Storage port for user accounts; implementations may raise"""

    def find_by_email(self, email: str) -> Optional[StoredUser]:
        raise NotImplementedError

    def get(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    def create(self, user: User, password_hash: str, salt: str) -> User:
        raise NotImplementedError

    def set_password(self, user_id: str, password_hash: str, salt: str) -> bool:
        raise NotImplementedError


class InMemoryUserDirectory(UserDirectory):
    def __init__(self):
        self._by_email: Dict[str, StoredUser] = {}
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> Optional[StoredUser]:
        return self._by_email.get(email)

    def get(self, user_id: str) -> Optional[User]:
        for stored in self._by_email.values():
            if stored.user.id == user_id:
                return stored.user
        return None

    def create(self, user: User, password_hash: str, salt: str) -> User:
        with self._lock:
            if user.email in self._by_email:
                raise UserAlreadyExists(user.email)
            self._by_email[user.email] = StoredUser(user, password_hash, salt)
        return user

    def set_password(self, user_id: str, password_hash: str, salt: str) -> bool:
        for stored in self._by_email.values():
            if stored.user.id == user_id:
                stored.password_hash = password_hash
                stored.salt = salt
                return True
        return False


class PostgresUserDirectory(UserDirectory):
    """Accounts in the ``app_users`` table"""

    COLUMNS = "id, email, display_name, role, password_hash, password_salt"

    def __init__(self, db_connection):
        self.db = db_connection

    @staticmethod
    def _stored(row) -> StoredUser:
        user = User(id=row["id"], email=row["email"], display_name=row["display_name"] or "", role=row["role"])
        return StoredUser(user, row["password_hash"], row["password_salt"])

    def find_by_email(self, email: str) -> Optional[StoredUser]:
        row = self.db.execute_query(
            f"SELECT {self.COLUMNS} FROM app_users WHERE email = %s", (email,), fetch_one=True
        )
        return self._stored(row) if row else None

    def get(self, user_id: str) -> Optional[User]:
        row = self.db.execute_query(f"SELECT {self.COLUMNS} FROM app_users WHERE id = %s", (user_id,), fetch_one=True)
        return self._stored(row).user if row else None

    def create(self, user: User, password_hash: str, salt: str) -> User:
        query = """
        INSERT INTO app_users (id, email, display_name, role, password_hash, password_salt, created_at)
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (email) DO NOTHING
        RETURNING id
        """
        row = self.db.execute_query(
            query,
            (user.id, user.email, user.display_name, user.role, password_hash, salt, datetime.now(timezone.utc)),
            fetch_one=True,
        )
        if row is None:
            raise UserAlreadyExists(user.email)
        return user

    def set_password(self, user_id: str, password_hash: str, salt: str) -> bool:
        row = self.db.execute_query(
            "UPDATE app_users SET password_hash = %s, password_salt = %s WHERE id = %s RETURNING id",
            (password_hash, salt, user_id),
            fetch_one=True,
        )
        return row is not None


class AuthService:
    def __init__(self, directory: UserDirectory, limiter: Optional[RateLimiter] = None):
        self.directory = directory
        self.limiter = limiter or RateLimiter()
        self.logger = get_logger("auth")

    def _unavailable(self, operation: str, error: Exception) -> AuthResult:
        self.logger.error(
            "User directory unavailable",
            extra={"event": "auth_backend_error", "operation": operation, "error": str(error)},
        )
        return AuthResult(success=False, error="Authentication service unavailable")

    def sign_in(self, email: str, password: str) -> AuthResult:
        email = (email or "").strip().lower()
        if not self.limiter.is_allowed(email):
            return AuthResult(success=False, error="Too many sign-in attempts. Please try again later.")

        try:
            stored = self.directory.find_by_email(email)
        except Exception as e:
            return self._unavailable("sign_in", e)

        if stored is None or not verify_password(password or "", stored.password_hash, stored.salt):
            log_security_event("sign_in_failed", {"email": email})
            return AuthResult(success=False, error=INVALID_CREDENTIALS)

        self.limiter.reset(email)
        self.logger.info("User signed in", extra={"event": "sign_in", "user_id": stored.user.id})
        return AuthResult(success=True, user=stored.user)

    def sign_out(self, user: Optional[Dict[str, Any]] = None) -> None:
        self.logger.info(
            "User signed out", extra={"event": "sign_out", "user_id": (user or {}).get("id")}
        )

    def register(self, email: str, password: str, display_name: str = "", role: str = ROLE_USER) -> AuthResult:
        password_hash, salt = hash_password(password)
        user = User(id=uuid.uuid4().hex, email=email.strip().lower(), display_name=display_name, role=role)
        try:
            created = self.directory.create(user, password_hash, salt)
        except UserAlreadyExists:
            return AuthResult(success=False, error="An account with this email already exists")
        except Exception as e:
            return self._unavailable("register", e)

        self.logger.info("User registered", extra={"event": "user_registered", "user_id": created.id})
        return AuthResult(success=True, user=created)

    def get_user(self, user_id: str) -> Optional[User]:
        try:
            return self.directory.get(user_id)
        except Exception as e:
            self._unavailable("get_user", e)
            return None

    def update_password(self, user_id: str, new_password: str) -> AuthResult:
        password_hash, salt = hash_password(new_password)
        try:
            updated = self.directory.set_password(user_id, password_hash, salt)
        except Exception as e:
            return self._unavailable("update_password", e)

        if not updated:
            return AuthResult(success=False, error="User not found")
        log_security_event("password_changed", {"user_id": user_id})
        return AuthResult(success=True, user=self.get_user(user_id))
