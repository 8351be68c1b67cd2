import pytest

from piloted.core.config import Settings, load_settings
from piloted.core.errors import ConfigError, FetchError
from piloted.models.schemas import Configuration
from piloted.services.cache import BackendCache
from piloted.services.discovery_client import DiscoveryClient
from piloted.services.loader import ConfigLoader


def _loader(settings: Settings | None = None) -> ConfigLoader:
    settings = settings or Settings()
    return ConfigLoader(DiscoveryClient(settings=settings), BackendCache(), settings)


def test_prepare_resolves_endpoint_and_names(monkeypatch):
    monkeypatch.setenv("CONSUL_HOST", "consul.internal")
    monkeypatch.setenv("SVC", "api")

    config = _loader().prepare({
        "consul": "{{ .CONSUL_HOST }}:8500",
        "backends": [{"name": "{{ .SVC }}"}, {"name": "static", "tags": ["ignored"]}],
    })

    assert config.discovery_endpoint == "consul.internal:8500"
    assert [b.name for b in config.backends] == ["api", "static"]


def test_prepare_uses_settings_endpoint_when_missing():
    config = _loader(Settings(consul="agent:8500")).prepare({"backends": [{"name": "nginx"}]})
    assert config.discovery_endpoint == "agent:8500"


def test_prepare_accepts_a_configuration_model():
    model = Configuration(consul="consul:8500", backends=[{"name": "nginx"}])
    assert _loader().prepare(model) == model


@pytest.mark.parametrize("config", [None, {}, {"consul": "x"}, {"consul": "x", "backends": None},
                                    {"consul": "x", "backends": [{}]}, "consul:8500"])
def test_prepare_rejects_bad_configuration(config):
    with pytest.raises(ConfigError):
        _loader().prepare(config)


def test_config_error_is_a_value_error():
    with pytest.raises(ValueError):
        _loader().prepare(None)


def test_fetch_error_aggregate_keeps_single_failure():
    err = FetchError("boom", backend="a", status_code=500)
    assert FetchError.aggregate([err]) is err
    assert err.errors == [err]


def test_load_settings_from_environment(monkeypatch):
    monkeypatch.setenv("PILOTED_CONSUL", "127.0.0.1:8500")
    monkeypatch.setenv("PILOTED_REQUEST_TIMEOUT_S", "1.5")

    s = load_settings()

    assert s.consul == "127.0.0.1:8500"
    assert s.request_timeout_s == 1.5
    assert s.catalog_path == "/v1/catalog/service"


@pytest.mark.parametrize("value", ["soon", "0"])
def test_load_settings_rejects_bad_timeout(monkeypatch, value):
    monkeypatch.setenv("PILOTED_REQUEST_TIMEOUT_S", value)
    with pytest.raises(ConfigError):
        load_settings()


def test_prepare_accepts_camel_case_endpoint_key():
    config = _loader(Settings(consul="agent:8500")).prepare(
        {"discoveryEndpoint": "catalog.internal:8500", "backends": [{"name": "nginx"}]}
    )
    assert config.discovery_endpoint == "catalog.internal:8500"
