import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ConfigurationError


_DEFAULT_AIRTABLE_BASE_URL = "https://api.airtable.com/v0"


@dataclass(frozen=True)
class AirtableConfig:
    api_key: Optional[str] = None
    base_id: Optional[str] = None
    base_url: str = _DEFAULT_AIRTABLE_BASE_URL
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        normalized_url = str(self.base_url or "").strip().rstrip("/")
        if not normalized_url:
            raise ValueError("base_url must not be empty")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than 0")
        object.__setattr__(self, "base_url", normalized_url)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: object,
    ) -> "AirtableConfig":
        env = os.environ if environ is None else environ
        values: dict[str, object] = {
            "api_key": env.get("AIRTABLE_API_KEY") or None,
            "base_id": env.get("AIRTABLE_BASE_ID") or None,
            "base_url": env.get("AIRTABLE_BASE_URL") or _DEFAULT_AIRTABLE_BASE_URL,
        }
        timeout_raw = env.get("AIRTABLE_TIMEOUT")
        if timeout_raw:
            try:
                values["timeout_seconds"] = float(timeout_raw)
            except ValueError as exc:
                raise ConfigurationError(f"AIRTABLE_TIMEOUT is not a number: {timeout_raw!r}") from exc
        for key, value in overrides.items():
            if value is not None:
                values[key] = value
        return cls(**values)  # type: ignore[arg-type]

    def require_credentials(self) -> None:
        if not self.api_key:
            raise ConfigurationError("api_key is required (set AIRTABLE_API_KEY or pass --api-key)")
        if not self.base_id:
            raise ConfigurationError("base_id is required (set AIRTABLE_BASE_ID or pass --base-id)")
