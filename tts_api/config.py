# ABOUTME: Configuration system for the Gemini TTS gateway with environment variable handling
# ABOUTME: Provides Settings singleton with validation and the immutable model catalog

import os
from typing import List, Literal, Optional, Tuple

from dotenv import load_dotenv

from tts_api.core.candidates import ModelCatalog

# Load environment variables from .env file if it exists
load_dotenv()

# Fixed allowlist of upstream TTS models, in fallback order
TTS_MODELS: Tuple[str, ...] = (
    "models/gemini-2.5-pro-preview-tts",
    "models/gemini-2.5-flash-preview-tts",
)
DEFAULT_TTS_MODEL = TTS_MODELS[1]
DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class Settings:
    """
    Configuration settings for the Gemini TTS gateway.
    Singleton class that loads configuration from environment variables
    with validation and defaults.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        # Always re-initialize to pick up environment changes
        self._gemini_api_key = self._get_gemini_api_key()
        self._default_model = self._get_default_model()
        self._api_base_url = self._get_api_base_url()
        self._max_retries_per_model = self._get_max_retries_per_model()
        self._upstream_timeout_sec = self._get_upstream_timeout_sec()
        self._timeout_sec = self._get_timeout_sec()
        self._shared_secret = self._get_shared_secret()
        self._cors_allow_origins = self._get_cors_allow_origins()
        self._log_level = self._get_log_level()
        self._log_json = self._get_log_json()
        self._rate_limit_requests_per_minute = self._get_rate_limit_requests_per_minute()

    @classmethod
    def _reset_instance(cls):
        """Reset singleton instance for testing purposes only."""
        cls._instance = None

    def _get_gemini_api_key(self) -> Optional[str]:
        """Get GEMINI_API_KEY; absence is reported per request, not at boot."""
        api_key = os.getenv("GEMINI_API_KEY", "").strip()
        return api_key or None

    def _get_default_model(self) -> str:
        """Get and validate GEMINI_TTS_MODEL environment variable."""
        model = os.getenv("GEMINI_TTS_MODEL", DEFAULT_TTS_MODEL).strip()

        if model not in TTS_MODELS:
            raise ValueError(
                f"Unsupported model: {model}. "
                f"Supported models: {', '.join(TTS_MODELS)}"
            )

        return model

    def _get_api_base_url(self) -> str:
        return os.getenv("GEMINI_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/")

    def _get_max_retries_per_model(self) -> int:
        """Get and validate MAX_RETRIES_PER_MODEL environment variable."""
        max_retries = int(os.getenv("MAX_RETRIES_PER_MODEL", "2"))

        if max_retries < 0:
            raise ValueError("MAX_RETRIES_PER_MODEL must not be negative")

        return max_retries

    def _get_upstream_timeout_sec(self) -> float:
        """Get and validate UPSTREAM_TIMEOUT_SEC environment variable."""
        timeout_sec = float(os.getenv("UPSTREAM_TIMEOUT_SEC", "60"))

        if timeout_sec <= 0:
            raise ValueError("UPSTREAM_TIMEOUT_SEC must be positive")

        return timeout_sec

    def _get_timeout_sec(self) -> int:
        """Get and validate TIMEOUT_SEC environment variable."""
        timeout_sec = int(os.getenv("TIMEOUT_SEC", "120"))

        if timeout_sec <= 0:
            raise ValueError("TIMEOUT_SEC must be positive")

        return timeout_sec

    def _get_shared_secret(self) -> Optional[str]:
        secret = os.getenv("TTS_SHARED_SECRET", "")
        return secret or None

    def _get_cors_allow_origins(self) -> List[str]:
        """Parse comma-separated CORS_ALLOW_ORIGINS environment variable."""
        origins_str = os.getenv("CORS_ALLOW_ORIGINS", "")

        if not origins_str.strip():
            return []

        return [origin.strip() for origin in origins_str.split(",") if origin.strip()]

    def _get_log_level(self) -> Literal["debug", "info", "warning", "error", "critical"]:
        """Get and validate LOG_LEVEL environment variable."""
        log_level = os.getenv("LOG_LEVEL", "info").lower()

        valid_levels = ["debug", "info", "warning", "error", "critical"]

        if log_level not in valid_levels:
            raise ValueError(
                f"Invalid log level: {log_level}. "
                f"Valid levels: {', '.join(valid_levels)}"
            )

        return log_level

    def _get_log_json(self) -> bool:
        return os.getenv("LOG_JSON", "true").lower() in ("1", "true", "yes")

    def _get_rate_limit_requests_per_minute(self) -> int:
        """Get and validate RATE_LIMIT_REQUESTS_PER_MINUTE environment variable."""
        requests_per_minute = int(os.getenv("RATE_LIMIT_REQUESTS_PER_MINUTE", "60"))

        if requests_per_minute <= 0:
            raise ValueError("RATE_LIMIT_REQUESTS_PER_MINUTE must be positive")

        return requests_per_minute

    # Properties to provide immutable access
    @property
    def gemini_api_key(self) -> Optional[str]:
        return self._gemini_api_key

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def api_base_url(self) -> str:
        return self._api_base_url

    @property
    def max_retries_per_model(self) -> int:
        return self._max_retries_per_model

    @property
    def upstream_timeout_sec(self) -> float:
        return self._upstream_timeout_sec

    @property
    def timeout_sec(self) -> int:
        return self._timeout_sec

    @property
    def shared_secret(self) -> Optional[str]:
        return self._shared_secret

    @property
    def cors_allow_origins(self) -> List[str]:
        return self._cors_allow_origins.copy()  # Return copy to prevent mutation

    @property
    def log_level(self) -> str:
        return self._log_level

    @property
    def log_json(self) -> bool:
        return self._log_json

    @property
    def rate_limit_requests_per_minute(self) -> int:
        return self._rate_limit_requests_per_minute

    @property
    def model_catalog(self) -> ModelCatalog:
        return ModelCatalog(models=TTS_MODELS, default_model=self._default_model)


# Global function to get settings instance
def get_settings() -> Settings:
    """Get the global settings instance."""
    return Settings()
