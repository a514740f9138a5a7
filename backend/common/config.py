"""Application configuration using Pydantic Settings."""

import json
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_secret_from_aws(secret_arn: str) -> str:
    """Fetch a secret value from AWS Secrets Manager.

    Args:
        secret_arn: The ARN or name of the secret.

    Returns:
        The secret value, or empty string if not found.
    """
    if not secret_arn:
        return ""

    try:
        import boto3

        client = boto3.client("secretsmanager")
        response = client.get_secret_value(SecretId=secret_arn)
        return response.get("SecretString", "")
    except Exception as e:
        import logging

        logging.getLogger(__name__).error(f"Failed to fetch secret {secret_arn}: {e}")
        return ""


def get_database_url_from_aws(secret_arn: str) -> str:
    """Fetch database URL from AWS Secrets Manager.

    The database secret is stored as JSON with a 'url' field.

    Args:
        secret_arn: The ARN or name of the secret.

    Returns:
        The database URL, or empty string if not found.
    """
    secret_string = get_secret_from_aws(secret_arn)
    if not secret_string:
        return ""

    try:
        secret_data = json.loads(secret_string)
        return secret_data.get("url", "")
    except (json.JSONDecodeError, TypeError):
        return ""


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Secrets can be given directly or through a Secrets Manager ARN
    (the ``*_secret_arn`` fields); see the ``resolved_*`` properties.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "QR Microsites"
    debug: bool = False
    environment: str = "development"

    # Server (not needed in Lambda mode)
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = ["*"]

    # Public site that serves /m/<slug> pages and checkout redirects
    public_site_url: str = "http://localhost:3000"

    # Database
    database_url: str = ""
    database_secret_arn: str = ""  # AWS Secrets Manager ARN for DB connection

    # AWS Configuration
    aws_region: str = ""

    # Supabase (auth + storage)
    supabase_url: str = ""  # e.g. https://abcd.supabase.co
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_service_role_key_secret_arn: str = ""
    supabase_jwt_audience: str = "authenticated"
    storage_bucket: str = "microsite-assets"
    header_image_max_bytes: int = 1024 * 1024  # 1MB

    # Stripe
    stripe_secret_key: str = ""
    stripe_secret_key_secret_arn: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_secret_arn: str = ""
    stripe_api_base: str = "https://api.stripe.com"
    stripe_currency: str = "usd"
    stripe_shipping_countries: list[str] = ["US", "CA"]
    stripe_webhook_tolerance_seconds: int = 300

    # Printful
    printful_api_token: str = ""
    printful_api_token_secret_arn: str = ""
    printful_api_base: str = "https://api.printful.com"
    print_file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    printful_placeholder_file_url: str = "https://via.placeholder.com/300x300.png"

    # Outbound HTTP
    http_timeout_seconds: float = 30.0

    # Autosave debounce for microsite content edits
    autosave_delay_seconds: float = 2.0

    # Debug recorder for outbound calls
    debug_recorder_enabled: bool = False
    debug_recorder_capacity: int = 500

    @property
    def resolved_database_url(self) -> str:
        """Get database URL, fetching from Secrets Manager if needed."""
        if self.database_url:
            return self.database_url
        if self.database_secret_arn:
            return get_database_url_from_aws(self.database_secret_arn)
        return ""

    @property
    def resolved_supabase_service_role_key(self) -> str:
        """Get Supabase service-role key, fetching from Secrets Manager if needed."""
        if self.supabase_service_role_key:
            return self.supabase_service_role_key
        return get_secret_from_aws(self.supabase_service_role_key_secret_arn)

    @property
    def resolved_stripe_secret_key(self) -> str:
        """Get Stripe secret key, fetching from Secrets Manager if needed."""
        if self.stripe_secret_key:
            return self.stripe_secret_key
        return get_secret_from_aws(self.stripe_secret_key_secret_arn)

    @property
    def resolved_stripe_webhook_secret(self) -> str:
        """Get Stripe webhook signing secret, fetching from Secrets Manager if needed."""
        if self.stripe_webhook_secret:
            return self.stripe_webhook_secret
        return get_secret_from_aws(self.stripe_webhook_secret_arn)

    @property
    def resolved_printful_api_token(self) -> str:
        """Get Printful API token, fetching from Secrets Manager if needed."""
        if self.printful_api_token:
            return self.printful_api_token
        return get_secret_from_aws(self.printful_api_token_secret_arn)

    @property
    def supabase_auth_url(self) -> str:
        """Base URL of the Supabase GoTrue API."""
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    @property
    def supabase_storage_url(self) -> str:
        """Base URL of the Supabase Storage API."""
        return f"{self.supabase_url.rstrip('/')}/storage/v1"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
