import copy
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv
from loguru import logger

from announcement_monitor.core.models import (
    ConfigError,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    Exchange,
    MonitorConfig,
)

DEFAULT_CONFIG_PATH = Path("config") / "monitor.yaml"
PROXY_SCHEMES = ("http", "https", "socks4", "socks5", "socks5h")

_log = logger.bind(component="config")


@dataclass
class GeneralConfig:
    """Process-wide settings"""
    poll_interval: float = DEFAULT_POLL_INTERVAL
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    log_level: str = "INFO"
    json_logs: bool = False
    log_dir: Optional[str] = "logs"
    seen_capacity: int = 500
    seed_on_start: bool = False
    stats_interval: float = 60.0
    queue_size: int = 1000
    poll_jitter: float = 0.0


@dataclass
class ExchangeSettings:
    """Per-exchange overrides; None falls back to the general value"""
    enabled: bool = True
    poll_interval: Optional[float] = None
    fetch_timeout: Optional[float] = None
    max_pages: int = 1
    detail_limit: int = 5


@dataclass
class TelegramConfig:
    """Telegram notification configuration"""
    bot_token: str = ""
    chat_id: str = ""
    thread_id: Optional[int] = None
    listings_only: bool = True

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)


@dataclass
class ProxySettings:
    """
    Outgoing proxies.

    A usable SYSTEM_PROXY is a single fixed proxy and wins; otherwise an explicit list
    and/or one host with a port range expanded to http://host:port for every port.
    """
    host: Optional[str] = None
    port_range: Optional[Tuple[int, int]] = None
    system_proxy: Optional[str] = None
    proxies: List[str] = field(default_factory=list)

    def proxy_urls(self) -> List[str]:
        if self.system_proxy:
            if _is_proxy_url(self.system_proxy):
                return [self.system_proxy]
            _log.warning(f"Invalid SYSTEM_PROXY {self.system_proxy!r}, falling back to proxy rotation")

        urls = list(self.proxies)
        if self.host and self.port_range:
            start, end = self.port_range
            urls.extend(f"http://{self.host}:{port}" for port in range(start, end + 1))
        return urls

    @staticmethod
    def parse_port_range(value: Optional[str]) -> Optional[Tuple[int, int]]:
        """'start-end' into a tuple, None (with a warning) when malformed"""
        if not value:
            return None
        parts = str(value).split("-")
        try:
            start, end = (int(p.strip()) for p in parts)
        except ValueError:
            _log.warning(f"Invalid PORT_RANGE {value!r}, expected 'start-end'")
            return None
        if not 0 < start < end <= 65535:
            _log.warning(f"Invalid PORT_RANGE {value!r}, start port must be below end port")
            return None
        return start, end


@dataclass
class AppConfig:
    """Main application configuration"""
    general: GeneralConfig = field(default_factory=GeneralConfig)
    exchanges: Dict[Exchange, ExchangeSettings] = field(default_factory=dict)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    proxy: ProxySettings = field(default_factory=ProxySettings)
    # Allow-list; None means every exchange
    selected: Optional[List[Exchange]] = None

    @classmethod
    def load(
            cls,
            config_path: Optional[str] = None,
            env_file: Optional[str] = None,
            environ: Optional[Mapping[str, str]] = None,
            **overrides,
    ) -> 'AppConfig':
        """
        Build the configuration from defaults, the YAML file, the environment and the
        command line overrides, each one taking precedence over the previous.
        """
        if environ is None:
            if env_file and not Path(env_file).exists():
                raise ConfigError(f"env file not found: {env_file}")
            load_dotenv(env_file)
            environ = os.environ

        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        if config_path and not path.exists():
            raise ConfigError(f"config file not found: {config_path}")

        config = cls.from_dict(cls._load_yaml(path))
        config.apply_env(environ)
        config.apply_overrides(**overrides)
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppConfig':
        config = cls(
            general=_build(GeneralConfig, data.get("general") or {}, "general"),
            telegram=_build(TelegramConfig, data.get("telegram") or {}, "telegram"),
        )

        proxy_data = dict(data.get("proxy") or {})
        config.proxy = ProxySettings(
            host=proxy_data.get("host"),
            port_range=ProxySettings.parse_port_range(proxy_data.get("port_range")),
            system_proxy=proxy_data.get("system_proxy"),
            proxies=list(proxy_data.get("proxies") or []),
        )

        exchanges_data = dict(data.get("exchanges") or {})
        defaults = exchanges_data.pop("defaults", None) or {}
        for name, settings in exchanges_data.items():
            exchange = parse_exchange(name)
            merged = cls._merge_configs(defaults, settings or {})
            config.exchanges[exchange] = _build(ExchangeSettings, merged, f"exchanges.{name}")
        for exchange in Exchange:
            config.exchanges.setdefault(exchange, _build(ExchangeSettings, defaults, "exchanges.defaults"))

        if data.get("selected"):
            config.selected = parse_exchange_list(data["selected"])
        return config

    def apply_env(self, environ: Mapping[str, str]):
        if value := environ.get("MONITOR_EXCHANGES"):
            self.selected = parse_exchange_list(value)
        if value := environ.get("MONITOR_INTERVAL"):
            self.general.poll_interval = parse_interval(value, "MONITOR_INTERVAL")
        if value := environ.get("MONITOR_EXCHANGE_INTERVALS"):
            self._apply_intervals(parse_exchange_intervals(value))
        if value := environ.get("LOG_LEVEL"):
            self.general.log_level = value.upper()

        if value := environ.get("TELEGRAM_BOT_TOKEN"):
            self.telegram.bot_token = value
        if value := environ.get("TELEGRAM_CHAT_ID"):
            self.telegram.chat_id = value

        if value := environ.get("PROXY"):
            self.proxy.host = value
        if value := environ.get("PORT_RANGE"):
            self.proxy.port_range = ProxySettings.parse_port_range(value)
        if value := environ.get("SYSTEM_PROXY"):
            self.proxy.system_proxy = value

    def apply_overrides(
            self,
            exchanges: Optional[str] = None,
            interval: Optional[float] = None,
            exchange_intervals: Optional[str] = None,
            log_level: Optional[str] = None,
            json_logs: Optional[bool] = None,
            seed: Optional[bool] = None,
    ):
        if exchanges:
            self.selected = parse_exchange_list(exchanges)
        if interval is not None:
            self.general.poll_interval = parse_interval(interval, "--interval")
        if exchange_intervals:
            self._apply_intervals(parse_exchange_intervals(exchange_intervals))
        if log_level:
            self.general.log_level = log_level.upper()
        if json_logs:
            self.general.json_logs = True
        if seed:
            self.general.seed_on_start = True

    def _apply_intervals(self, intervals: Dict[Exchange, float]):
        for exchange, seconds in intervals.items():
            self.exchanges.setdefault(exchange, ExchangeSettings()).poll_interval = seconds

    def is_selected(self, exchange: Exchange) -> bool:
        return self.selected is None or exchange in self.selected

    def monitor_configs(self) -> List[MonitorConfig]:
        """Resolved MonitorConfig for every known exchange, disabled ones included"""
        configs = []
        for exchange in Exchange:
            settings = self.exchanges.get(exchange) or ExchangeSettings()
            try:
                configs.append(MonitorConfig(
                    exchange_id=exchange,
                    poll_interval=float(_first(settings.poll_interval, self.general.poll_interval)),
                    enabled=bool(settings.enabled) and self.is_selected(exchange),
                    fetch_timeout=float(_first(settings.fetch_timeout, self.general.fetch_timeout)),
                    max_pages=int(settings.max_pages),
                    detail_limit=int(settings.detail_limit),
                ))
            except (TypeError, ValueError) as e:
                raise ConfigError(str(e)) from e
        return configs

    @classmethod
    def _merge_configs(cls, defaults: Dict, specific: Dict) -> Dict:
        """Deep merge defaults with specific config"""
        result = copy.deepcopy(defaults)

        for key, value in specific.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    @staticmethod
    def _load_yaml(path: Path) -> Dict:
        """Load a YAML file"""
        if not path.exists():
            return {}

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")
        return data


def _build(cls, data: Dict[str, Any], section: str):
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"{section}: unknown keys {sorted(unknown)}")
    return cls(**copy.deepcopy(data))


def parse_exchange(value: str) -> Exchange:
    try:
        return Exchange.parse(value)
    except ValueError as e:
        raise ConfigError(str(e)) from e


def parse_exchange_list(value) -> List[Exchange]:
    """Comma separated string or list of exchange ids"""
    names = value.split(",") if isinstance(value, str) else list(value)
    return [parse_exchange(name) for name in names if str(name).strip()]


def parse_interval(value, source: str) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{source}: invalid interval {value!r}") from e
    if seconds <= 0:
        raise ConfigError(f"{source}: interval must be positive, got {value!r}")
    return seconds


def parse_exchange_intervals(value: str) -> Dict[Exchange, float]:
    """
    Parse "binance:60,okx:120".

    Entries without a colon or with a non-numeric value are skipped with a warning;
    unknown exchanges and non-positive intervals raise ConfigError.
    """
    intervals = {}
    for entry in (value or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, seconds = entry.partition(":")
        if not sep or not name.strip():
            _log.warning(f"Ignoring malformed exchange interval {entry!r}")
            continue
        try:
            number = float(seconds)
        except ValueError:
            _log.warning(f"Ignoring malformed exchange interval {entry!r}")
            continue
        exchange = parse_exchange(name)
        if number <= 0:
            raise ConfigError(f"{exchange.value}: interval must be positive, got {seconds!r}")
        intervals[exchange] = number
    return intervals


def _first(value, default):
    return default if value is None else value


def _is_proxy_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in PROXY_SCHEMES and bool(parsed.hostname)
