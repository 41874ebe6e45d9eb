# lvcert/core/config.py
import os
from typing import ClassVar
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from lvcert.services.rules import GraduationPolicy

load_dotenv()

def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}

def _default_database_url() -> str:
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    os.makedirs(data_dir, exist_ok=True)
    return os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(data_dir, 'certificates.db')}")

class Settings(BaseModel):
    # Constante (não vira campo Pydantic)
    DATA_DIR: ClassVar[str] = os.path.abspath(os.getenv("DATA_DIR", "./data"))

    DATABASE_URL: str = Field(default_factory=_default_database_url)
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET"))
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30")))

    # verificação pública: <PUBLIC_BASE_URL>/verify/<code>
    PUBLIC_BASE_URL: str = Field(default_factory=lambda: os.getenv("PUBLIC_BASE_URL", "https://scriptauradev.com"))

    # transações de certificado
    TX_TIMEOUT_SECONDS: float = Field(default_factory=lambda: float(os.getenv("TX_TIMEOUT_SECONDS", "10")))
    TX_MAX_WAIT_SECONDS: float = Field(default_factory=lambda: float(os.getenv("TX_MAX_WAIT_SECONDS", "15")))
    CODE_MAX_ATTEMPTS: int = Field(default_factory=lambda: int(os.getenv("CODE_MAX_ATTEMPTS", "5")))
    BULK_MAX_ITEMS: int = Field(default_factory=lambda: int(os.getenv("BULK_MAX_ITEMS", "500")))
    # valor inválido derruba o boot (ValueError), não a primeira emissão
    GRADUATION_POLICY: GraduationPolicy = Field(
        default_factory=lambda: GraduationPolicy(os.getenv("GRADUATION_POLICY", "unconditional").strip().lower())
    )
    VERIFY_EXPOSE_REVOCATION_REASON: bool = Field(
        default_factory=lambda: _env_bool("VERIFY_EXPOSE_REVOCATION_REASON", "false")
    )

    # e-mail
    EMAIL_PROVIDER: str = Field(default_factory=lambda: os.getenv("EMAIL_PROVIDER", "noop"))
    SMTP_HOST: str = Field(default_factory=lambda: os.getenv("SMTP_HOST", "localhost"))
    SMTP_PORT: int = Field(default_factory=lambda: int(os.getenv("SMTP_PORT", "587")))
    SMTP_USER: str = Field(default_factory=lambda: os.getenv("SMTP_USER", ""))
    SMTP_PASSWORD: str = Field(default_factory=lambda: os.getenv("SMTP_PASSWORD", ""))
    SMTP_USE_TLS: bool = Field(default_factory=lambda: _env_bool("SMTP_USE_TLS", "true"))
    EMAIL_FROM: str = Field(default_factory=lambda: os.getenv("EMAIL_FROM", "no-reply@launchverse.com"))

    SYSTEM_ACTOR_EMAIL: str = Field(default_factory=lambda: os.getenv("SYSTEM_ACTOR_EMAIL", "system@launchverse.com"))
    # seed opcional do primeiro super admin
    INITIAL_ADMIN_EMAIL: str = Field(default_factory=lambda: os.getenv("INITIAL_ADMIN_EMAIL", ""))
    INITIAL_ADMIN_PASSWORD: str = Field(default_factory=lambda: os.getenv("INITIAL_ADMIN_PASSWORD", ""))
    INITIAL_ADMIN_NAME: str = Field(default_factory=lambda: os.getenv("INITIAL_ADMIN_NAME", "Super Admin"))
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(default_factory=lambda: _env_bool("RUN_MIGRATIONS_ON_STARTUP", "true"))

settings = Settings()
