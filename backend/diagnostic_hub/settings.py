from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

	# Gemini is used for question translation
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="google/gemini-2.5-flash", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")

	# Stripe checkout
	stripe_secret_key: str | None = Field(default=None, validation_alias="STRIPE_SECRET_KEY")
	stripe_api_base: str = Field(default="https://api.stripe.com/v1", validation_alias="STRIPE_API_BASE")
	# When true, the processing fee is added on top of the net test price
	pass_processing_fees: bool = Field(default=False, validation_alias="PASS_PROCESSING_FEES")

	# Outbound email (Resend)
	resend_api_key: str | None = Field(default=None, validation_alias="RESEND_API_KEY")
	resend_api_base: str = Field(default="https://api.resend.com", validation_alias="RESEND_API_BASE")
	email_from: str = Field(default="D.E.Bs LEARNING ACADEMY <onboarding@resend.dev>", validation_alias="EMAIL_FROM")

	# Public URLs
	public_base_url: str = Field(default="http://localhost:8000", validation_alias="PUBLIC_BASE_URL")
	frontend_origin: str = Field(default="http://localhost:5173", validation_alias="FRONTEND_ORIGIN")

	# Rendered certificates are stored here
	certificate_dir: str = Field(default="./certificates", validation_alias="CERTIFICATE_DIR")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
