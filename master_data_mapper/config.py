"""Master-data API configuration.

Reads connection settings from the environment, loading a local ``.env``
first when one exists:
- MASTER_DATA_API_URL: Base URL of the policy backend (default https://localhost:7202)
- MASTER_DATA_API_TOKEN: Bearer token sent with every request
- MASTER_DATA_API_TIMEOUT: Request timeout in seconds
- MASTER_DATA_API_RETRIES: Retries for 429/5xx and connection errors
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


DEFAULT_API_URL = "https://localhost:7202"
DEFAULT_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0
    retry_on_status: Tuple[int, ...] = (429, 500, 502, 503, 504)

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for retry attempt (exponential backoff)."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)


@dataclass
class MasterDataApiConfig:
    """Configuration for the master-data API client."""
    base_url: str = DEFAULT_API_URL
    token: Optional[str] = None
    timeout_seconds: float = 30.0
    retry_config: RetryConfig = field(default_factory=RetryConfig)

    def build_url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


def load_api_config_from_env(env_path: Optional[Path] = None) -> MasterDataApiConfig:
    """Build a MasterDataApiConfig from environment variables.

    Args:
        env_path: .env file to load first (defaults to the repository root)

    Returns:
        Populated MasterDataApiConfig

    Raises:
        ValueError: If a numeric setting is not a number
    """
    path = env_path or DEFAULT_ENV_PATH
    if path.exists():
        load_dotenv(path)

    timeout = os.getenv("MASTER_DATA_API_TIMEOUT")
    retries = os.getenv("MASTER_DATA_API_RETRIES")

    try:
        retry_config = RetryConfig(max_retries=int(retries)) if retries else RetryConfig()
        return MasterDataApiConfig(
            base_url=os.getenv("MASTER_DATA_API_URL") or DEFAULT_API_URL,
            token=os.getenv("MASTER_DATA_API_TOKEN") or None,
            timeout_seconds=float(timeout) if timeout else 30.0,
            retry_config=retry_config,
        )
    except ValueError as e:
        raise ValueError(
            "MASTER_DATA_API_TIMEOUT and MASTER_DATA_API_RETRIES must be numeric"
        ) from e
