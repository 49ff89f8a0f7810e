import pytest

from announcement_monitor.config.loader import AppConfig, ProxySettings, parse_exchange_intervals
from announcement_monitor.core.models import ConfigError, Exchange

YAML = """
general:
  poll_interval: 200
  fetch_timeout: 20
exchanges:
  defaults:
    detail_limit: 2
  binance:
    poll_interval: 60
  kraken:
    enabled: false
    detail_limit: 0
"""


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "monitor.yaml"
    path.write_text(YAML)
    return str(path)


def _by_exchange(config):
    return {c.exchange_id: c for c in config.monitor_configs()}


def test_defaults_without_any_source(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    configs = AppConfig.load(environ={}).monitor_configs()

    assert [c.exchange_id for c in configs] == list(Exchange)
    assert all(c.enabled and c.poll_interval == 300 and c.fetch_timeout == 30 for c in configs)


def test_yaml_values_and_defaults_merge(config_file):
    configs = _by_exchange(AppConfig.load(config_file, environ={}))

    assert configs[Exchange.BINANCE].poll_interval == 60
    assert configs[Exchange.BINANCE].detail_limit == 2
    assert configs[Exchange.OKX].poll_interval == 200
    assert configs[Exchange.OKX].fetch_timeout == 20
    assert not configs[Exchange.KRAKEN].enabled
    assert configs[Exchange.KRAKEN].detail_limit == 0


def test_env_overrides_yaml_and_cli_overrides_env(config_file):
    environ = {
        "MONITOR_INTERVAL": "150",
        "MONITOR_EXCHANGES": "binance,okx,bybit",
        "MONITOR_EXCHANGE_INTERVALS": "okx:90",
        "LOG_LEVEL": "debug",
    }
    config = AppConfig.load(config_file, environ=environ, exchanges="binance,okx", exchange_intervals="binance:30")
    configs = _by_exchange(config)

    assert configs[Exchange.BINANCE].poll_interval == 30
    assert configs[Exchange.OKX].poll_interval == 90
    assert configs[Exchange.MEXC].poll_interval == 150
    assert not configs[Exchange.BYBIT].enabled
    assert [e for e, c in configs.items() if c.enabled] == [Exchange.BINANCE, Exchange.OKX]
    assert config.general.log_level == "DEBUG"


def test_cli_interval_overrides_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = AppConfig.load(environ={"MONITOR_INTERVAL": "150"}, interval=45, seed=True, json_logs=True)
    assert config.general.poll_interval == 45
    assert config.general.seed_on_start
    assert config.general.json_logs


def test_exchange_intervals_parsing():
    assert parse_exchange_intervals("binance:60, OKX:120,,broken,mexc:soon") == {
        Exchange.BINANCE: 60.0,
        Exchange.OKX: 120.0,
    }
    with pytest.raises(ConfigError):
        parse_exchange_intervals("ftx:60")
    with pytest.raises(ConfigError):
        parse_exchange_intervals("binance:0")


def test_invalid_values_raise_config_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigError):
        AppConfig.load(environ={"MONITOR_EXCHANGES": "binance,ftx"})
    with pytest.raises(ConfigError):
        AppConfig.load(environ={"MONITOR_INTERVAL": "-5"})
    with pytest.raises(ConfigError):
        AppConfig.load(config_path=str(tmp_path / "missing.yaml"), environ={})

    bad = tmp_path / "bad.yaml"
    bad.write_text("exchanges:\n  binance:\n    poll_every: 5\n")
    with pytest.raises(ConfigError):
        AppConfig.load(str(bad), environ={})

    negative = tmp_path / "negative.yaml"
    negative.write_text("exchanges:\n  binance:\n    poll_interval: 0\n")
    with pytest.raises(ConfigError):
        AppConfig.load(str(negative), environ={}).monitor_configs()


def test_proxy_urls_from_host_and_port_range(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = AppConfig.load(environ={"PROXY": "10.0.0.1", "PORT_RANGE": "8000-8002"})
    assert config.proxy.proxy_urls() == ["http://10.0.0.1:8000", "http://10.0.0.1:8001", "http://10.0.0.1:8002"]

    assert ProxySettings(system_proxy="http://sys:1").proxy_urls() == ["http://sys:1"]
    assert ProxySettings.parse_port_range("9000") is None
    assert ProxySettings.parse_port_range("9000-8000") is None


def test_system_proxy_wins_over_port_range_rotation(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    environ = {"PROXY": "10.0.0.1", "PORT_RANGE": "8000-8001", "SYSTEM_PROXY": "socks5://sys:1080"}
    assert AppConfig.load(environ=environ).proxy.proxy_urls() == ["socks5://sys:1080"]

    environ["SYSTEM_PROXY"] = "not a proxy"
    assert AppConfig.load(environ=environ).proxy.proxy_urls() == ["http://10.0.0.1:8000", "http://10.0.0.1:8001"]


def test_telegram_from_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = AppConfig.load(environ={"TELEGRAM_BOT_TOKEN": "123:abc", "TELEGRAM_CHAT_ID": "-100"})
    assert config.telegram.enabled
    assert config.telegram.chat_id == "-100"


def test_env_file_is_loaded(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    # unset again on teardown
    monkeypatch.setenv("MONITOR_INTERVAL", "1")
    monkeypatch.delenv("MONITOR_INTERVAL")
    env_file = tmp_path / "custom.env"
    env_file.write_text("MONITOR_INTERVAL=77\n")

    config = AppConfig.load(env_file=str(env_file))

    assert config.general.poll_interval == 77
