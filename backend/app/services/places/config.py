"""Google Places config. API key from env (GOOGLE_PLACES_API_KEY) or PlacesConfig args."""
from app.config import settings
from app.core.errors import ConfigurationError

DEFAULT_BASE_URL = "https://maps.googleapis.com/maps/api/place"


class PlacesConfig:
    """API key and base URL for Google Places."""

    __slots__ = ("api_key", "base_url")

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self.api_key = (api_key or settings.google_places_api_key or "").strip()
        self.base_url = base_url.rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def require(self) -> "PlacesConfig":
        """Raise ConfigurationError when the key is missing; returns self for chaining."""
        if not self.is_configured():
            raise ConfigurationError("GOOGLE_PLACES_API_KEY is required. Add it to backend/.env.")
        return self
