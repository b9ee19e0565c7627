from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    app_name: str = "ProFast Parcel API"

    # store
    use_mongo: bool = False
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "profast"

    # identity
    jwt_secret: str = "dev"
    jwt_alg: str = "HS256"
    access_ttl_min: int = 60

    # payments
    stripe_secret_key: str = ""
    stripe_api_base: str = "https://api.stripe.com"
    payment_currency: str = "usd"
    gateway_timeout_s: float = 10.0

    # lifecycle
    enforce_transitions: bool = False

    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
