"""Self-contained session tokens (HS256 JWTs) for verified public keys."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from jose import JWTError, jwt

from stellar_auth.core.settings import settings
from stellar_auth.db.time import Clock, utcnow

DEFAULT_SESSION_TTL_SECONDS = 30 * 24 * 60 * 60


@dataclass(frozen=True)
class SessionData:
    """Claims carried by a valid session token."""

    public_key: str
    user_id: int | None
    created_at: int


class SessionCodec:
    """Mint and read session tokens.

    The codec never touches storage: a token is valid iff its signature
    verifies against the server secret and its expiry has not elapsed.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        clock: Clock = utcnow,
    ) -> None:
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, public_key: str, user_id: int | None) -> str:
        """Return a signed token for ``public_key`` valid for ``ttl_seconds``."""
        now = self._clock()
        claims: dict[str, object] = {
            "publicKey": public_key,
            "userId": user_id,
            "createdAt": int(now.timestamp() * 1000),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.ttl_seconds)).timestamp()),
        }
        token: str = jwt.encode(claims, self._secret_key, algorithm=self.algorithm)
        return token

    def read(self, token: str | None) -> SessionData | None:
        """Return the session for ``token`` or None; never raises.

        Bad signatures, malformed tokens, expired tokens and tokens with
        unexpected claims are all reported the same way.
        """
        if not token:
            return None
        try:
            # Expiry is checked against the injected clock rather than jose's wall clock.
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            return None

        try:
            expires_at = int(payload["exp"])
            public_key = payload["publicKey"]
            user_id = payload.get("userId")
            created_at = int(payload.get("createdAt", 0))
        except (KeyError, TypeError, ValueError):
            return None

        if expires_at <= int(self._clock().timestamp()):
            return None
        if not isinstance(public_key, str) or not public_key:
            return None
        if user_id is not None and not isinstance(user_id, int):
            return None

        return SessionData(public_key=public_key, user_id=user_id, created_at=created_at)


def get_session_codec() -> SessionCodec:
    """Return a codec configured from application settings."""
    return SessionCodec(
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
        ttl_seconds=settings.session_ttl_seconds,
    )
