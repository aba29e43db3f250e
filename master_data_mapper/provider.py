"""Master-Data Providers.

Catalog snapshots come from the policy backend's MasterData endpoints:

    GET {base_url}/api/MasterData/combustibles
    GET {base_url}/api/MasterData/destinos
    GET {base_url}/api/MasterData/departamentos
    GET {base_url}/api/MasterData/calidades
    GET {base_url}/api/MasterData/categorias
    GET {base_url}/api/MasterData/tarifas?companiaId=...

Each endpoint returns a JSON list (or ``{"data": [...]}``) of rows using the
backend's column names; rows are adapted to MasterDataItem here.
"""

import asyncio
import json
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Union

import aiohttp

from core.observability.logging import get_logger
from master_data_mapper.config import MasterDataApiConfig, load_api_config_from_env
from master_data_mapper.models import MASTER_DATA_TYPES, MasterDataItem, MasterDataSets


logger = get_logger(__name__)

MASTER_DATA_ENDPOINTS: Dict[str, str] = {
    tipo: f"/api/MasterData/{tipo}" for tipo in MASTER_DATA_TYPES
}

# Catalog type → (name column, code column)
RAW_COLUMNS: Dict[str, Tuple[str, str]] = {
    "combustibles": ("name", "id"),
    "categorias": ("catdsc", "catcod"),
    "departamentos": ("dptnom", "sc_cod"),
    "destinos": ("desnom", "descod"),
    "calidades": ("caldsc", "calcod"),
    "tarifas": ("tarnom", "tarcod"),
}

CompaniaId = Union[int, str]


class MasterDataApiError(Exception):
    """Base exception for master-data API errors."""
    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class MasterDataAuthError(MasterDataApiError):
    """Authentication failed (401/403)."""
    pass


class MasterDataNotFoundError(MasterDataApiError):
    """Endpoint not found (404)."""
    pass


class MasterDataProvider(Protocol):
    """Protocol for catalog retrieval."""

    async def get_master_data_by_type(
        self,
        tipo: str,
        compania_id: Optional[CompaniaId] = None,
    ) -> List[MasterDataItem]:
        """Get one catalog.

        Args:
            tipo: Catalog type ("combustibles", "tarifas", ...)
            compania_id: Insurance company; only restricts tariffs

        Returns:
            Catalog items in backend order ([] for unknown types)
        """
        ...


# =============================================================================
# Row adaptation
# =============================================================================

def extract_rows(payload: Any) -> List[Dict[str, Any]]:
    """Rows of a MasterData response: a bare list or the ``data`` member."""
    if isinstance(payload, Mapping):
        payload = payload.get("data")
    if not isinstance(payload, list):
        return []
    return [row for row in payload if isinstance(row, Mapping)]


def adapt_master_data_items(
    tipo: str,
    payload: Any,
    compania_id: Optional[CompaniaId] = None,
) -> List[MasterDataItem]:
    """Convert backend rows into MasterDataItem.

    Tariffs are restricted to ``compania_id`` when given; categories with a
    blank description are dropped; rows without a usable id are skipped.
    """
    rows = extract_rows(payload)

    if tipo == "tarifas" and compania_id:
        rows = [row for row in rows if str(row.get("companias")) == str(compania_id)]

    name_column, code_column = RAW_COLUMNS.get(tipo, (None, None))
    items: List[MasterDataItem] = []

    for row in rows:
        row_id = row.get("id")
        if isinstance(row_id, bool) or not isinstance(row_id, (int, str)) or row_id == "":
            continue

        if tipo == "categorias" and not str(row.get("catdsc") or "").strip():
            continue

        if name_column:
            nombre = row.get(name_column) or ""
            codigo = row.get(code_column) or ""
        else:
            nombre = row.get("nombre") or row.get("name") or "Sin nombre"
            codigo = row.get("codigo") or row.get("code") or ""

        items.append(MasterDataItem(
            id=row_id,
            nombre=nombre,
            codigo=codigo or None,
            valor=row.get("valor") or row.get("value"),
            activo=True,
        ))

    return items


# =============================================================================
# In-memory provider
# =============================================================================

class InMemoryMasterDataProvider:
    """Serves catalogs from memory.

    ``payloads`` holds raw backend responses per type and goes through the
    same adaptation (and tariff filtering) as the HTTP provider;
    ``catalogs`` holds ready-made items and is returned as-is.
    """

    def __init__(
        self,
        payloads: Optional[Mapping[str, Any]] = None,
        catalogs: Optional[MasterDataSets] = None,
    ) -> None:
        self._payloads = dict(payloads or {})
        self._catalogs = catalogs

    async def get_master_data_by_type(
        self,
        tipo: str,
        compania_id: Optional[CompaniaId] = None,
    ) -> List[MasterDataItem]:
        if tipo not in MASTER_DATA_TYPES:
            return []
        if self._catalogs is not None:
            return list(getattr(self._catalogs, tipo))
        return adapt_master_data_items(tipo, self._payloads.get(tipo), compania_id)


# =============================================================================
# HTTP provider
# =============================================================================

class HttpMasterDataProvider:
    """Reads catalogs from the policy backend over HTTP.

    Usage:
        async with HttpMasterDataProvider() as provider:
            tarifas = await provider.get_master_data_by_type("tarifas", compania_id=3)
    """

    def __init__(
        self,
        config: Optional[MasterDataApiConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """Initialize the provider.

        Args:
            config: API configuration (defaults to the environment)
            session: Existing aiohttp session; one is created when omitted
        """
        self.config = config or load_api_config_from_env()
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "HttpMasterDataProvider":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Create the HTTP session if needed."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session if this provider created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    async def get_master_data_by_type(
        self,
        tipo: str,
        compania_id: Optional[CompaniaId] = None,
    ) -> List[MasterDataItem]:
        endpoint = MASTER_DATA_ENDPOINTS.get(tipo)
        if not endpoint:
            logger.warning(f"Unknown master data type '{tipo}'")
            return []

        params = None
        if tipo == "tarifas" and compania_id:
            params = {"companiaId": str(compania_id)}

        payload = await self._get_json(endpoint, params)
        items = adapt_master_data_items(tipo, payload, compania_id)
        logger.debug(f"Loaded {len(items)} {tipo}", extra_fields={"catalog": tipo})
        return items

    async def get_all(self, compania_id: Optional[CompaniaId] = None) -> MasterDataSets:
        """Load the six catalogs concurrently."""
        results = await asyncio.gather(*(
            self.get_master_data_by_type(tipo, compania_id if tipo == "tarifas" else None)
            for tipo in MASTER_DATA_TYPES
        ))
        return MasterDataSets(**dict(zip(MASTER_DATA_TYPES, results)))

    async def _get_json(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Any:
        """GET an endpoint with automatic retries.

        Raises:
            MasterDataAuthError: Authentication failed
            MasterDataNotFoundError: Endpoint not found
            MasterDataApiError: Other API errors, invalid JSON, exhausted retries
        """
        if self._session is None:
            await self.connect()

        url = self.config.build_url(endpoint)
        retry_config = self.config.retry_config
        last_error: Optional[Exception] = None

        for attempt in range(retry_config.max_retries + 1):
            try:
                timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)

                async with self._session.get(
                    url,
                    headers=self._get_headers(),
                    params=params,
                    timeout=timeout,
                ) as response:
                    response_text = await response.text()

                    if response.status < 400:
                        if not response_text:
                            return []
                        try:
                            return json.loads(response_text)
                        except ValueError as e:
                            raise MasterDataApiError(
                                f"Invalid JSON from {url}", response.status, response_text
                            ) from e

                    message = _error_message(response_text, response.status)

                    if response.status in (401, 403):
                        raise MasterDataAuthError(message, response.status, response_text)

                    if response.status == 404:
                        raise MasterDataNotFoundError(
                            f"Endpoint not found: {url}", response.status, response_text
                        )

                    if response.status in retry_config.retry_on_status and attempt < retry_config.max_retries:
                        delay = retry_config.get_delay(attempt)
                        logger.warning(
                            f"Request failed with {response.status}, "
                            f"retrying in {delay:.1f}s (attempt {attempt + 1}/{retry_config.max_retries})"
                        )
                        await asyncio.sleep(delay)
                        continue

                    raise MasterDataApiError(message, response.status, response_text)

            except MasterDataApiError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = e
                if attempt < retry_config.max_retries:
                    delay = retry_config.get_delay(attempt)
                    logger.warning(f"Request error: {e!r}, retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue

        raise MasterDataApiError(f"Request to {url} failed after retries: {last_error!r}")


def _error_message(response_text: str, status: int) -> str:
    """Backend error message from a JSON body, else the raw body."""
    message = f"HTTP error! status: {status}"
    if not response_text:
        return message
    try:
        data = json.loads(response_text)
    except ValueError:
        return response_text
    if isinstance(data, Mapping):
        return data.get("message") or data.get("Message") or message
    return message
