from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt

from taskmanager.services.errors import AuthenticationFailed

ALGORITHM = "HS256"


class TokenService:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl_minutes: int = 15,
        refresh_ttl_days: int = 3,
    ) -> None:
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = timedelta(minutes=max(1, access_ttl_minutes))
        self.refresh_ttl = timedelta(days=max(1, refresh_ttl_days))

    @staticmethod
    def _encode(user_id: str, secret: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {"id": user_id, "iat": now, "exp": now + ttl}
        return jwt.encode(payload, secret, algorithm=ALGORITHM)

    @staticmethod
    def _decode(token: str, secret: str) -> str:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
        user_id = payload.get("id")
        if not isinstance(user_id, str) or not user_id:
            raise jwt.InvalidTokenError("token carries no user id")
        return user_id

    def create_access_token(self, user_id: str) -> str:
        return self._encode(user_id, self.access_secret, self.access_ttl)

    def create_refresh_token(self, user_id: str) -> str:
        return self._encode(user_id, self.refresh_secret, self.refresh_ttl)

    def verify_access_token(self, token: str) -> str:
        try:
            return self._decode(token, self.access_secret)
        except jwt.ExpiredSignatureError:
            raise AuthenticationFailed("Access token expired", code="TOKEN_EXPIRED") from None
        except jwt.InvalidTokenError:
            raise AuthenticationFailed("Invalid access token") from None

    def verify_refresh_token(self, token: str) -> str:
        return self._decode(token, self.refresh_secret)
