"""
Master-Data Provider Test

This test validates catalog loading:
1. Backend rows are adapted per catalog type (name/code columns)
2. Tariffs are restricted to the insurance company
3. The HTTP provider sends auth headers and query params
4. Retries on 5xx, typed errors on 401/404
5. API settings are read from the environment
"""

import asyncio
import json

import pytest

from master_data_mapper.config import MasterDataApiConfig, RetryConfig, load_api_config_from_env
from master_data_mapper.models import MasterDataSets
from master_data_mapper.provider import (
    HttpMasterDataProvider,
    InMemoryMasterDataProvider,
    MasterDataApiError,
    MasterDataAuthError,
    MasterDataNotFoundError,
    adapt_master_data_items,
)


TARIFAS_PAYLOAD = [
    {"id": 1, "tarnom": "Tarifa General", "tarcod": "TG", "companias": 3},
    {"id": 2, "tarnom": "Todo Riesgo", "tarcod": "TR", "companias": 3},
    {"id": 3, "tarnom": "Plan Único", "tarcod": "PU", "companias": 4},
]


# =============================================================================
# Fakes
# =============================================================================

class FakeResponse:
    def __init__(self, status, body=""):
        self.status = status
        self._body = body if isinstance(body, str) else json.dumps(body)

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Returns queued responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def get(self, url, headers=None, params=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "params": params})
        return self.responses.pop(0)

    async def close(self):
        self.closed = True


def make_provider(*responses, token="secret", max_retries=2):
    config = MasterDataApiConfig(
        base_url="http://backend.test/",
        token=token,
        timeout_seconds=5,
        retry_config=RetryConfig(max_retries=max_retries, base_delay=0),
    )
    session = FakeSession(*responses)
    return HttpMasterDataProvider(config=config, session=session), session


# =============================================================================
# Row adaptation
# =============================================================================

class TestAdaptMasterDataItems:
    """Backend rows → MasterDataItem."""

    def test_fuel_rows_use_id_as_code(self):
        items = adapt_master_data_items("combustibles", [{"id": "GAS", "name": "GASOLINA"}])
        assert len(items) == 1
        assert items[0].key == "GAS"
        assert items[0].nombre == "GASOLINA"
        assert items[0].codigo == "GAS"

    def test_column_names_per_type(self):
        assert adapt_master_data_items("departamentos", [{"id": 1, "dptnom": "Montevideo", "sc_cod": "MO"}])[0].nombre == "Montevideo"
        assert adapt_master_data_items("destinos", [{"id": 1, "desnom": "Particular", "descod": "P"}])[0].codigo == "P"
        assert adapt_master_data_items("calidades", [{"id": 1, "caldsc": "Propietario"}])[0].nombre == "Propietario"

    def test_blank_categories_are_dropped(self):
        rows = [
            {"id": 1, "catdsc": "Automóvil", "catcod": "AUT"},
            {"id": 2, "catdsc": "   "},
            {"id": 3, "catdsc": None},
        ]
        items = adapt_master_data_items("categorias", rows)
        assert [item.key for item in items] == ["1"]

    def test_tariffs_filtered_by_company(self):
        assert [i.key for i in adapt_master_data_items("tarifas", TARIFAS_PAYLOAD, 3)] == ["1", "2"]
        assert [i.key for i in adapt_master_data_items("tarifas", TARIFAS_PAYLOAD, "4")] == ["3"]
        assert len(adapt_master_data_items("tarifas", TARIFAS_PAYLOAD)) == 3

    def test_data_envelope(self):
        items = adapt_master_data_items("destinos", {"data": [{"id": 5, "desnom": "Taxi"}]})
        assert items[0].nombre == "Taxi"

    def test_unusable_payloads(self):
        assert adapt_master_data_items("destinos", None) == []
        assert adapt_master_data_items("destinos", "oops") == []
        assert adapt_master_data_items("destinos", [None, "x", {"desnom": "Sin id"}]) == []

    def test_unknown_type_uses_generic_columns(self):
        items = adapt_master_data_items("otros", [{"id": 1, "code": "X"}])
        assert items[0].nombre == "Sin nombre"
        assert items[0].codigo == "X"


# =============================================================================
# In-memory provider
# =============================================================================

class TestInMemoryProvider:
    """Catalogs served from memory."""

    def test_payloads_are_adapted(self):
        provider = InMemoryMasterDataProvider(payloads={"tarifas": TARIFAS_PAYLOAD})
        items = asyncio.run(provider.get_master_data_by_type("tarifas", 4))
        assert [i.nombre for i in items] == ["Plan Único"]

    def test_ready_made_catalogs(self):
        sets = MasterDataSets.model_validate({"destinos": [{"id": 1, "nombre": "Taxi"}]})
        provider = InMemoryMasterDataProvider(catalogs=sets)
        items = asyncio.run(provider.get_master_data_by_type("destinos"))
        assert items[0].nombre == "Taxi"

    def test_unknown_type(self):
        provider = InMemoryMasterDataProvider(payloads={"otros": [{"id": 1}]})
        assert asyncio.run(provider.get_master_data_by_type("otros")) == []


# =============================================================================
# HTTP provider
# =============================================================================

class TestHttpProvider:
    """Catalogs read from the policy backend."""

    def test_request_shape(self):
        """Tariffs are requested for the company with a bearer token."""
        provider, session = make_provider(FakeResponse(200, TARIFAS_PAYLOAD))

        items = asyncio.run(provider.get_master_data_by_type("tarifas", 3))

        assert [i.key for i in items] == ["1", "2"]
        call = session.calls[0]
        assert call["url"] == "http://backend.test/api/MasterData/tarifas"
        assert call["params"] == {"companiaId": "3"}
        assert call["headers"]["Authorization"] == "Bearer secret"

    def test_no_company_param_for_other_catalogs(self):
        provider, session = make_provider(FakeResponse(200, [{"id": 1, "desnom": "Taxi"}]), token=None)

        asyncio.run(provider.get_master_data_by_type("destinos", 3))

        assert session.calls[0]["params"] is None
        assert "Authorization" not in session.calls[0]["headers"]

    def test_unknown_type_makes_no_request(self):
        provider, session = make_provider()
        assert asyncio.run(provider.get_master_data_by_type("otros")) == []
        assert session.calls == []

    def test_empty_body(self):
        provider, _ = make_provider(FakeResponse(200, ""))
        assert asyncio.run(provider.get_master_data_by_type("calidades")) == []

    def test_retry_on_server_error(self):
        provider, session = make_provider(
            FakeResponse(503, "unavailable"),
            FakeResponse(200, [{"id": 1, "caldsc": "Propietario"}]),
        )

        items = asyncio.run(provider.get_master_data_by_type("calidades"))

        assert items[0].nombre == "Propietario"
        assert len(session.calls) == 2

    def test_retries_exhausted(self):
        provider, session = make_provider(
            FakeResponse(500, {"message": "boom"}),
            FakeResponse(500, {"message": "boom"}),
            max_retries=1,
        )

        with pytest.raises(MasterDataApiError) as exc_info:
            asyncio.run(provider.get_master_data_by_type("calidades"))

        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "boom"
        assert len(session.calls) == 2

    def test_auth_error(self):
        provider, session = make_provider(FakeResponse(401, {"message": "Token vencido"}))

        with pytest.raises(MasterDataAuthError) as exc_info:
            asyncio.run(provider.get_master_data_by_type("destinos"))

        assert str(exc_info.value) == "Token vencido"
        assert len(session.calls) == 1

    def test_not_found(self):
        provider, _ = make_provider(FakeResponse(404, ""))
        with pytest.raises(MasterDataNotFoundError):
            asyncio.run(provider.get_master_data_by_type("destinos"))

    def test_invalid_json(self):
        provider, _ = make_provider(FakeResponse(200, "<html>"))
        with pytest.raises(MasterDataApiError):
            asyncio.run(provider.get_master_data_by_type("destinos"))

    def test_get_all(self):
        """All six catalogs load, tariffs filtered by company."""
        responses = {
            "combustibles": [{"id": "GAS", "name": "GASOLINA"}],
            "destinos": [{"id": 1, "desnom": "Particular"}],
            "departamentos": [{"id": 1, "dptnom": "Montevideo"}],
            "calidades": [{"id": 1, "caldsc": "Propietario"}],
            "categorias": [{"id": 1, "catdsc": "Automóvil"}],
            "tarifas": TARIFAS_PAYLOAD,
        }

        class RoutingSession(FakeSession):
            def get(self, url, headers=None, params=None, timeout=None):
                self.calls.append({"url": url, "params": params})
                return FakeResponse(200, responses[url.rsplit("/", 1)[-1]])

        config = MasterDataApiConfig(base_url="http://backend.test", retry_config=RetryConfig(base_delay=0))
        provider = HttpMasterDataProvider(config=config, session=RoutingSession())

        sets = asyncio.run(provider.get_all(compania_id=4))

        assert sets.sizes() == {
            "combustibles": 1,
            "destinos": 1,
            "departamentos": 1,
            "calidades": 1,
            "categorias": 1,
            "tarifas": 1,
        }
        assert sets.tarifas[0].nombre == "Plan Único"

    def test_injected_session_is_not_closed(self):
        provider, session = make_provider()
        asyncio.run(provider.close())
        assert session.closed is False


# =============================================================================
# Configuration
# =============================================================================

class TestApiConfig:
    """Settings from the environment."""

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MASTER_DATA_API_URL", "http://policies.local")
        monkeypatch.setenv("MASTER_DATA_API_TOKEN", "abc")
        monkeypatch.setenv("MASTER_DATA_API_TIMEOUT", "5")
        monkeypatch.setenv("MASTER_DATA_API_RETRIES", "1")

        config = load_api_config_from_env(env_path=tmp_path / "missing.env")

        assert config.base_url == "http://policies.local"
        assert config.token == "abc"
        assert config.timeout_seconds == 5.0
        assert config.retry_config.max_retries == 1

    def test_defaults(self, monkeypatch, tmp_path):
        for name in ("MASTER_DATA_API_URL", "MASTER_DATA_API_TOKEN", "MASTER_DATA_API_TIMEOUT", "MASTER_DATA_API_RETRIES"):
            monkeypatch.delenv(name, raising=False)

        config = load_api_config_from_env(env_path=tmp_path / "missing.env")

        assert config.base_url == "https://localhost:7202"
        assert config.token is None
        assert config.retry_config.max_retries == 3

    def test_dotenv_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("MASTER_DATA_API_URL", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("MASTER_DATA_API_URL=http://from-dotenv\n")

        config = load_api_config_from_env(env_path=env_file)

        assert config.base_url == "http://from-dotenv"
        monkeypatch.delenv("MASTER_DATA_API_URL", raising=False)

    def test_invalid_timeout(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MASTER_DATA_API_TIMEOUT", "soon")
        with pytest.raises(ValueError):
            load_api_config_from_env(env_path=tmp_path / "missing.env")

    def test_build_url(self):
        config = MasterDataApiConfig(base_url="http://backend.test/")
        assert config.build_url("/api/MasterData/tarifas") == "http://backend.test/api/MasterData/tarifas"

    def test_retry_delay_is_capped(self):
        retry = RetryConfig(base_delay=1.0, max_delay=5.0)
        assert retry.get_delay(0) == 1.0
        assert retry.get_delay(1) == 2.0
        assert retry.get_delay(10) == 5.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
