"""Bearer token validation (ES256).

Tokens are issued by the platform's auth service.  This module only
verifies them and pulls out the claims the engine needs: `sub` (the
user's UUID) and `role`.  The role in the token is a hint; dependencies.py
loads the principal from the store so deactivation takes effect at once.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from coursegate.core.config import SETTINGS

logger = logging.getLogger(__name__)

ALGORITHM = "ES256"
ISSUER = "auth-service"
AUDIENCE = "coursegate"
ACCESS_TOKEN_TTL_MIN = 15

# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------
# Production: the auth service's public key from JWT_PUBLIC_KEY_PATH.
# Dev/test: an ephemeral key pair generated on import, so tests can mint
# tokens with create_access_token().
_private_key: ec.EllipticCurvePrivateKey | None
if SETTINGS.jwt_public_key_path:
    _private_key = None
    _public_key = serialization.load_pem_public_key(
        Path(SETTINGS.jwt_public_key_path).read_bytes()
    )
    logger.info("Loaded JWT public key from %s", SETTINGS.jwt_public_key_path)
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(*, sub: str, role: str) -> str:
    """Sign a token with the ephemeral dev key.  Tests and dev tooling only."""
    if _private_key is None:
        raise RuntimeError("Token issuance is disabled when JWT_PUBLIC_KEY_PATH is set")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "role": role,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat"]},
    )
