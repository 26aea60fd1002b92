from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Any, Optional
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


def parse_operators(v: Any) -> List[str]:
    """Parse captcha operators from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        return [op.strip() for op in v.split(',') if op.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "SBTE Portal"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str = "change-me-in-production"
    API_PREFIX: str = "/api"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./sbte_portal.db"
    DB_ECHO: bool = False

    # ==========================================
    # Security / JWT
    # ==========================================
    JWT_SECRET_KEY: str = "change-me-jwt-secret"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12

    # ==========================================
    # Captcha
    # ==========================================
    CAPTCHA_SECRET: str = "default-salt"
    CAPTCHA_TTL_SECONDS: int = 300
    CAPTCHA_OPERATORS_STR: str = "+"

    @property
    def CAPTCHA_OPERATORS(self) -> List[str]:
        return parse_operators(self.CAPTCHA_OPERATORS_STR)

    # ==========================================
    # CORS
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 100
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # ==========================================
    # Uploads / Storage
    # ==========================================
    STORAGE_BACKEND: str = "local"  # local or s3
    UPLOAD_DIR: str = "./uploads"
    MAX_PDF_SIZE_MB: int = 10
    MAX_REQUEST_SIZE_MB: int = 20

    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: str = "ap-south-1"
    S3_BUCKET_NAME: str = "sbte-portal-uploads"
    S3_ENDPOINT_URL: Optional[str] = None

    # ==========================================
    # Razorpay
    # ==========================================
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_WEBHOOK_SECRET: str = ""

    # ==========================================
    # Email (SMTP)
    # ==========================================
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "noreply@sbte.gov.in"
    EMAIL_FROM_NAME: str = "SBTE Portal"

    # ==========================================
    # Account Lockout
    # ==========================================
    MAX_LOGIN_ATTEMPTS: int = 5
    LOCKOUT_DURATION_MINUTES: int = 30
    LOGIN_ATTEMPT_WINDOW_MINUTES: int = 60
    MAX_LOCKOUT_HOURS: int = 24

    # ==========================================
    # Password Reset
    # ==========================================
    OTP_EXPIRE_MINUTES: int = 10
    RESET_MAX_PER_HOUR: int = 3
    RESET_MAX_PER_DAY: int = 5
    RESET_LOCKOUT_MINUTES: int = 30

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        if v not in ("local", "s3"):
            raise ValueError("STORAGE_BACKEND must be 'local' or 's3'")
        return v

    @property
    def MAX_PDF_SIZE_BYTES(self) -> int:
        return self.MAX_PDF_SIZE_MB * 1024 * 1024

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()


INSECURE_DEFAULTS = {
    "SECRET_KEY": "change-me-in-production",
    "JWT_SECRET_KEY": "change-me-jwt-secret",
    "CAPTCHA_SECRET": "default-salt",
}


def validate_settings() -> List[str]:
    """Return warnings for settings that must not ship to production as-is"""
    warnings = []
    for name, default in INSECURE_DEFAULTS.items():
        if getattr(settings, name) == default:
            warnings.append(f"{name} is using the default value")
    if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
        warnings.append("Razorpay credentials are not configured")
    if settings.STORAGE_BACKEND == "s3" and not settings.AWS_ACCESS_KEY_ID:
        warnings.append("S3 storage selected without AWS credentials")
    if settings.is_production and settings.DEBUG:
        warnings.append("DEBUG is enabled in production")
    return warnings
