"""Access token validation (ES256).

Identity is owned by the platform's auth service; this module only needs
to verify the bearer token and read ``sub`` and ``roles``.  The
verification key comes from JWT_PUBLIC_KEY.  In dev and test, when no key
is configured, an ephemeral key pair is generated on import and
create_access_token mints tokens against it.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from achievement_service.core.config import SETTINGS, Settings

ALGORITHM = "ES256"
ACCESS_TOKEN_TTL_MIN = 15

KNOWN_ROLES = frozenset({"learner", "instructor", "admin"})


def load_public_key(pem: str) -> ec.EllipticCurvePublicKey:
    """Parse a PEM public key and check that it can verify ES256."""
    try:
        key = serialization.load_pem_public_key(pem.encode())
    except (ValueError, UnsupportedAlgorithm):
        raise ValueError("JWT_PUBLIC_KEY is not a valid PEM public key") from None
    if not isinstance(key, ec.EllipticCurvePublicKey) or not isinstance(
        key.curve, ec.SECP256R1
    ):
        raise ValueError("JWT_PUBLIC_KEY must be a P-256 (ES256) key")
    return key


def load_keys(
    settings: Settings,
) -> tuple[ec.EllipticCurvePrivateKey | None, ec.EllipticCurvePublicKey]:
    """Return (signing key or None, verification key) for ``settings``."""
    if settings.jwt_public_key:
        return None, load_public_key(settings.jwt_public_key)
    if settings.is_dev or settings.is_test:
        private_key = ec.generate_private_key(ec.SECP256R1())
        return private_key, private_key.public_key()
    raise ValueError(f"JWT_PUBLIC_KEY is required when APP_ENV={settings.app_env}")


_private_key, _public_key = load_keys(SETTINGS)
ISSUER = SETTINGS.jwt_issuer
AUDIENCE = SETTINGS.jwt_audience


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    if _private_key is None:
        raise RuntimeError("tokens are issued by the identity service")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["learner"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256 so alg:none and alg-switching tokens are
    rejected.  Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )


def roles_from_claims(claims: dict) -> frozenset[str]:
    """Keep only roles this service understands; malformed claims grant nothing."""
    raw = claims.get("roles", [])
    if not isinstance(raw, list):
        return frozenset()
    return frozenset(r for r in raw if isinstance(r, str) and r in KNOWN_ROLES)
