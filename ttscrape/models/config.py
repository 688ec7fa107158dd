"""
Pydantic models for client, request and scraper configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")


class ClientConfig(BaseModel):
    """Settings of a ``TikTokAPI`` client and the sessions it creates."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    headless: bool = True
    browser_free: bool = False
    base_url: str = "https://www.tiktok.com"
    browser: str = "chromium"
    proxy: str = ""

    # Seconds
    sleep_after: float = Field(default=3.0, ge=0)
    session_timeout: float = Field(default=120.0, gt=0)
    navigation_timeout: float = Field(default=30.0, gt=0)
    request_timeout: float = Field(default=30.0, gt=0)

    @field_validator("browser")
    @classmethod
    def validate_browser(cls, v: str) -> str:
        """Ensures the browser is one Playwright can drive."""
        v = v.lower()
        if v not in SUPPORTED_BROWSERS:
            raise ValueError(
                f"Browser must be one of: {', '.join(SUPPORTED_BROWSERS)}."
            )
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with http:// or https://.")
        return v.rstrip("/")


class RequestOptions(BaseModel):
    """
    Per-call options for ``Sound`` operations.

    Attributes:
        session_index: Pool position of the session used for the call.
        ms_token: Overrides the session's msToken when non-empty.
        headers: Extra headers, winning over the session's headers.
    """

    session_index: int = Field(default=0, ge=0)
    ms_token: str = ""
    headers: dict[str, str] = Field(default_factory=dict)

    def request_params(self) -> dict[str, str]:
        """Query parameters contributed by these options."""
        if self.ms_token:
            return {"msToken": self.ms_token}
        return {}


class ScrapeConfig(ClientConfig):
    """A validated configuration model for the command-line application."""

    ms_tokens: list[str] = Field(default_factory=list)
    num_sessions: int = 1
    max_concurrency: int = 10
    video_count: int = Field(default=5, ge=0)
    sound_limit: int = Field(default=10, ge=1)

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    @field_validator("ms_tokens")
    @classmethod
    def drop_blank_tokens(cls, v: list[str]) -> list[str]:
        return [token.strip() for token in v if token and token.strip()]

    @field_validator("num_sessions")
    @classmethod
    def validate_sessions(cls, v: int) -> int:
        if v < 1 or v > 16:
            raise ValueError("Number of sessions must be between 1 and 16.")
        return v

    @field_validator("max_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent scrapes."""
        if v < 1 or v > 64:
            raise ValueError("Max concurrency must be between 1 and 64.")
        return v

    def client_config(self) -> ClientConfig:
        """Extracts the client settings."""
        return ClientConfig(
            **{key: getattr(self, key) for key in ClientConfig.model_fields}
        )

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
