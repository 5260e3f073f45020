from __future__ import annotations

from dataclasses import dataclass
import logging

import jwt
from sqlalchemy.exc import IntegrityError

from taskmanager.db import User
from taskmanager.services.errors import AuthenticationFailed, Conflict, NotFound, PermissionDenied, ValidationFailed
from taskmanager.services.mailer import is_usable_address
from taskmanager.services.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from taskmanager.services.token_service import TokenService
from taskmanager.services.user_store import UserStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class LoginResult:
    user: User
    access_token: str
    refresh_token: str


class AuthService:
    def __init__(self, users: UserStore, tokens: TokenService) -> None:
        self.users = users
        self.tokens = tokens

    async def signup(self, name: str, email: str, password: str) -> User:
        if not name or not email or not password:
            raise ValidationFailed("Please fill all fields")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationFailed(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        email = email.strip()
        if not is_usable_address(email):
            raise ValidationFailed("Invalid email address")
        if await self.users.get_by_email(email) is not None:
            raise Conflict("Email already registered")

        try:
            user = await self.users.create(name.strip(), email, hash_password(password))
        except IntegrityError:
            raise Conflict("Email already registered") from None
        logger.info("User created: %s", user.id)
        return user

    async def login(self, email: str, password: str) -> LoginResult:
        if not email or not password:
            raise ValidationFailed("Email and password required")
        user = await self.users.get_by_email(email.strip())
        if user is None:
            raise ValidationFailed("User not found")
        if not verify_password(password, user.password_hash):
            raise ValidationFailed("Incorrect password")

        logger.info("User logged in: %s", user.id)
        return LoginResult(
            user=user,
            access_token=self.tokens.create_access_token(user.id),
            refresh_token=self.tokens.create_refresh_token(user.id),
        )

    def refresh(self, refresh_token: str | None) -> str:
        if not refresh_token:
            raise AuthenticationFailed("No refresh token")
        try:
            user_id = self.tokens.verify_refresh_token(refresh_token)
        except jwt.InvalidTokenError:
            raise PermissionDenied("Invalid refresh token") from None
        return self.tokens.create_access_token(user_id)

    async def authenticate(self, authorization: str | None) -> User:
        if not authorization or not authorization.startswith("Bearer "):
            raise AuthenticationFailed("Authorization token missing")
        user_id = self.tokens.verify_access_token(authorization.split(" ", 1)[1].strip())
        user = await self.users.get(user_id)
        if user is None:
            raise AuthenticationFailed("User no longer exists")
        return user

    async def profile(self, user_id: str) -> User:
        user = await self.users.get(user_id)
        if user is None:
            logger.warning("User profile not found: %s", user_id)
            raise NotFound("User not found")
        return user
