from typing import Any, Dict


DEFAULT_BASE_URL = "https://api.mistral.ai/v1"


class AISettings:
    """Helper exposing typed accessors for the language-model endpoint configuration.

    The API key is not part of the YAML file; it comes from the ``AI_API_KEY``
    environment variable and is injected by the composition root.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return self.data

    @property
    def base_url(self) -> str:
        val = self.data.get("base_url")
        return str(val) if val else DEFAULT_BASE_URL

    @property
    def temperature(self) -> float | None:
        val = self.data.get("temperature")
        return float(val) if val is not None else None

    @property
    def max_tokens(self) -> int | None:
        val = self.data.get("max_tokens")
        return int(val) if val is not None else None

    @property
    def request_timeout(self) -> float:
        return float(self.data.get("request_timeout", 60.0))
