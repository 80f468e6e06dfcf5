from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./foodcart.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]

    # external collaborators; empty payment/geocoding URLs switch to mock / disabled
    CART_API_URL: str = "http://localhost:5002/api/cart"
    ORDER_API_URL: str = "http://localhost:5002/api/orders"
    PAYMENT_API_URL: str = ""
    GEOCODING_API_URL: str = ""
    HTTP_TIMEOUT_SECONDS: float = 10.0

    CURRENCY: str = "LKR"
    PAYMENT_MOCK_DELAY_MS: int = 200

    GUEST_CART_TTL_SECONDS: int = 30 * 24 * 3600
    GUEST_CART_PURGE_INTERVAL_SECONDS: int = 3600
    MERGE_GUEST_CART_ON_LOGIN: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
