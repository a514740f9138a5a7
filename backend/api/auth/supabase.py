"""Supabase Auth JWT token validation."""

from functools import lru_cache

import jwt
from jwt import PyJWKClient, PyJWKClientError

from common.config import settings


class SupabaseAuthError(Exception):
    """Base exception for Supabase authentication errors."""

    pass


class TokenExpiredError(SupabaseAuthError):
    """Token has expired."""

    pass


class InvalidTokenError(SupabaseAuthError):
    """Token is invalid or malformed."""

    pass


class SupabaseAuth:
    """Supabase access token validator.

    Validates JWTs issued by Supabase Auth (GoTrue) using the project's
    JWKS endpoint. Keys are cached and refreshed by ``PyJWKClient``.
    """

    ALGORITHMS = ["RS256", "ES256"]

    def __init__(self, project_url: str, audience: str = "authenticated"):
        """Initialize the validator.

        Args:
            project_url: Supabase project URL (e.g., 'https://abcd.supabase.co')
            audience: Expected ``aud`` claim of access tokens
        """
        self.project_url = project_url.rstrip("/")
        self.audience = audience

        self.issuer = f"{self.project_url}/auth/v1"
        self.jwks_url = f"{self.issuer}/.well-known/jwks.json"

        self._jwk_client: PyJWKClient | None = None

    @property
    def jwk_client(self) -> PyJWKClient:
        """Lazily initialize JWKS client."""
        if self._jwk_client is None:
            self._jwk_client = PyJWKClient(self.jwks_url)
        return self._jwk_client

    def decode_token(self, token: str) -> dict:
        """Decode and validate a Supabase access token.

        Args:
            token: JWT access token string

        Returns:
            Decoded token payload as dictionary

        Raises:
            TokenExpiredError: If the token has expired
            InvalidTokenError: If the token is invalid or verification fails
        """
        try:
            signing_key = self.jwk_client.get_signing_key_from_jwt(token)

            return jwt.decode(
                token,
                signing_key.key,
                algorithms=self.ALGORITHMS,
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "verify_exp": True,
                    "verify_aud": True,
                    "verify_iss": True,
                },
            )

        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.InvalidAudienceError as e:
            raise InvalidTokenError("Invalid token audience") from e
        except jwt.InvalidIssuerError as e:
            raise InvalidTokenError("Invalid token issuer") from e
        except PyJWKClientError as e:
            raise InvalidTokenError(f"Failed to fetch signing key: {e}") from e
        except jwt.PyJWTError as e:
            raise InvalidTokenError(f"Token validation failed: {e}") from e

    def is_token_valid(self, token: str) -> bool:
        """Check if a token is valid without raising exceptions."""
        try:
            self.decode_token(token)
            return True
        except SupabaseAuthError:
            return False


@lru_cache
def get_supabase_auth() -> SupabaseAuth:
    """Get cached Supabase auth instance configured from settings."""
    return SupabaseAuth(
        project_url=settings.supabase_url,
        audience=settings.supabase_jwt_audience,
    )
