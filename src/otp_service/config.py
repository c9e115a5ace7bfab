"""OTP Service — configuration loaded from environment."""

from pydantic_settings import BaseSettings

from otp_service.core.models import OTPConfig


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── OTP lifecycle ─────────────────────────────────────
    otp_code_length: int = 6
    otp_ttl_seconds: int = 600
    otp_max_attempts: int = 3
    otp_cleanup_interval_seconds: int = 300
    otp_delivery_timeout_seconds: float = 10.0

    # ── Email delivery (SMTP) ─────────────────────────────
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    email_from: str = "no-reply@example.com"

    # ── SMS delivery (HTTP gateway) ───────────────────────
    sms_gateway_url: str = ""
    sms_api_token: str = ""
    sms_sender_id: str = "OTPService"

    # ── Rate limiting (per client IP) ─────────────────────
    send_rate_limit: int = 5
    verify_rate_limit: int = 10
    rate_limit_window_seconds: int = 15 * 60

    # ── App ───────────────────────────────────────────────
    app_name: str = "OTP Service"
    debug: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def otp_config(self) -> OTPConfig:
        """Build the core lifecycle configuration from these settings."""
        return OTPConfig(
            code_length=self.otp_code_length,
            ttl_seconds=self.otp_ttl_seconds,
            max_attempts=self.otp_max_attempts,
            cleanup_interval_seconds=self.otp_cleanup_interval_seconds,
            delivery_timeout_seconds=self.otp_delivery_timeout_seconds,
        )


# Singleton settings instance
settings = Settings()
