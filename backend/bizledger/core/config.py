from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    env: str = "dev"
    secret_key: str = "change_me_super_secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 8
    database_url: str = "postgresql+psycopg2://ledger:ledgerpass@db:5432/bizledger"
    backend_cors_origins: str = "http://localhost:5173"

    bcrypt_rounds: int = 12
    log_level: str = "INFO"
    invoice_number_prefix: str = "INV"

    # First admin account, created on startup when no admin exists yet
    bootstrap_admin_username: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        origins = self.backend_cors_origins
        return [origin.strip() for origin in origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
