from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    # Configuração da aplicação
    APP_NAME: str = "CMS Transportadora API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Banco de dados
    DATABASE_URL: str = "sqlite:///./cms.db"
    DATABASE_ECHO: bool = False

    # Configuração CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: List[str] = ["*"]
    CORS_HEADERS: List[str] = ["*"]

    # JWT - troque em produção
    SECRET_KEY: str = "cms-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    # Administrador criado na inicialização
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"

    # Twilio (SMS via Verify e WhatsApp via Messages)
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_SERVICE_ID: Optional[str] = None
    TWILIO_WHATSAPP_FROM: Optional[str] = None
    VERIFICATION_CODE_EXPIRY_MINUTES: int = 5
    MAX_VERIFICATION_ATTEMPTS: int = 3
    OTP_SWEEP_INTERVAL_SECONDS: int = 60

    # Armazenamento de arquivos
    BLOB_READ_WRITE_TOKEN: Optional[str] = None
    BLOB_API_URL: str = "https://blob.vercel-storage.com"
    UPLOAD_DIR: str = "static/uploads"
    STATIC_URL_PREFIX: str = "/static/uploads"
    MAX_UPLOAD_SIZE_MB: int = 10
    MAX_FREIGHT_UPLOAD_SIZE_MB: int = 15

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()
