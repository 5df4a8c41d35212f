"""
Security utilities and middleware for the Case & Report Tracker.

This module provides password hashing, the session-based login guard,
sign-in throttling and the security headers added to every response.
"""

import hashlib
import hmac
import secrets
import time
from collections import deque
from functools import wraps
from typing import Any, Dict, Optional, Tuple

from flask import current_app, jsonify, request, session

from casetrack.utils.logging_config import log_security_event

PBKDF2_ITERATIONS = 100000
SESSION_USER_KEY = "user"


class RateLimiter:
    """Simple in-memory sliding-window rate limiter"""

    def __init__(self, max_requests: int = 10, window_seconds: int = 300, block_seconds: int = 900):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.block_seconds = block_seconds
        self.requests = {}
        self.blocked = {}

    def is_allowed(self, identifier: str) -> bool:
        """
        Check if another attempt is allowed for ``identifier``

        Args:
            identifier: IP address or user identifier

        Returns:
            True if the attempt is allowed, False otherwise
        """
        now = time.time()
        window_start = now - self.window_seconds

        attempts = self.requests.get(identifier, deque())
        while attempts and attempts[0] < window_start:
            attempts.popleft()
        if not attempts:
            self.requests.pop(identifier, None)

        if identifier in self.blocked:
            if now < self.blocked[identifier]:
                return False
            del self.blocked[identifier]

        if len(attempts) >= self.max_requests:
            self.blocked[identifier] = now + self.block_seconds
            log_security_event(
                "rate_limit_exceeded", {"identifier": identifier, "blocked_seconds": self.block_seconds}
            )
            return False

        attempts.append(now)
        self.requests[identifier] = attempts
        return True

    def reset(self, identifier: str):
        self.requests.pop(identifier, None)
        self.blocked.pop(identifier, None)


class SecurityMiddleware:
    """Security middleware for Flask application"""

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize security middleware with Flask app"""
        app.before_request(self.before_request)
        app.after_request(self.after_request)

    def before_request(self):
        if not self.check_request_size():
            return (
                jsonify({"success": False, "error": "Request too large", "message": "Request payload is too large."}),
                413,
            )

    def after_request(self, response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response

    def check_request_size(self) -> bool:
        max_size = current_app.config.get("MAX_CONTENT_LENGTH") or 16 * 1024 * 1024
        return (request.content_length or 0) <= max_size


def current_user() -> Optional[Dict[str, Any]]:
    """The signed-in user stored in the session, or None"""
    return session.get(SESSION_USER_KEY)


def login_user(user: Dict[str, Any]):
    session.clear()
    session[SESSION_USER_KEY] = user
    session.permanent = True


def logout_user():
    session.clear()


def login_required(func):
    """Decorator rejecting requests without a signed-in user"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        if current_user() is None:
            return (
                jsonify({"success": False, "error": "Authentication required", "message": "Please sign in."}),
                401,
            )
        return func(*args, **kwargs)

    return wrapper


def hash_password(password: str, salt: Optional[str] = None) -> Tuple[str, str]:
    """
    Hash password with salt

    Args:
        password: Password to hash
        salt: Optional salt (will generate if not provided)

    Returns:
        Tuple of (hashed_password, salt)
    """
    if salt is None:
        salt = secrets.token_hex(32)

    hashed = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS)
    return hashed.hex(), salt


def verify_password(password: str, hashed_password: str, salt: str) -> bool:
    """
    Verify password against hash

    Args:
        password: Password to verify
        hashed_password: Stored hash
        salt: Salt used for hashing

    Returns:
        True if password matches, False otherwise
    """
    hashed = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS)
    return hmac.compare_digest(hashed.hex(), hashed_password)
