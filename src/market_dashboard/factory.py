from __future__ import annotations

import importlib
from dataclasses import dataclass
from enum import Enum, auto

from market_dashboard.config import Settings
from market_dashboard.errors import APIKeyNotFoundError, ConfigurationError


class Tier(Enum):
  FREE = auto()
  PREMIUM = auto()


@dataclass
class ProviderMetadata:
  class_path: str
  tier: Tier
  api_key_setting: str | None = None
  base_url_setting: str | None = None
  rate_limit_per_minute: int | None = None


_PROVIDERS = {
  "alpha_vantage": ProviderMetadata(
    class_path="market_dashboard.providers.alpha_vantage.AlphaVantageProvider",
    tier=Tier.FREE,
    api_key_setting="alpha_vantage_api_key",
    rate_limit_per_minute=5,
  ),
  "dashboard": ProviderMetadata(
    class_path="market_dashboard.providers.dashboard.DashboardProvider",
    tier=Tier.FREE,
    base_url_setting="dashboard_api_url",
  ),
}

PROVIDER_NAMES = tuple(_PROVIDERS)

# Environment variable behind each setting, for error messages.
_SETTING_ENV_VARS = {
  "alpha_vantage_api_key": "ALPHA_VANTAGE_API_KEY",
  "dashboard_api_url": "DASHBOARD_API_URL",
}


class ProviderFactory:
  def __init__(self, settings: Settings | None = None):
    self._settings = settings or Settings.from_env()

  @staticmethod
  def _import_from_string(path: str) -> type:
    """Helper to dynamically import a class from a string path."""
    module_name, class_name = path.rsplit(".", 1)
    module = importlib.import_module(module_name)
    return getattr(module, class_name)

  def create(self, provider_name: str):
    """Creates a provider instance based on its registered name."""
    metadata = _PROVIDERS.get(provider_name)
    if not metadata:
      raise ValueError(f"Provider '{provider_name}' not found. Available: {list(_PROVIDERS)}")

    provider_class = self._import_from_string(metadata.class_path)

    constructor_kwargs = {"timeout": self._settings.request_timeout}
    if metadata.api_key_setting:
      api_key = getattr(self._settings, metadata.api_key_setting)
      if not api_key:
        env_var = _SETTING_ENV_VARS[metadata.api_key_setting]
        raise APIKeyNotFoundError(
          f"Required API key '{env_var}' for provider '{provider_name}' not found. "
          "Please set it in your .env file or as an environment variable."
        )
      constructor_kwargs["api_key"] = api_key
    if metadata.base_url_setting:
      base_url = getattr(self._settings, metadata.base_url_setting)
      if not base_url:
        env_var = _SETTING_ENV_VARS[metadata.base_url_setting]
        raise ConfigurationError(f"Missing required env var '{env_var}'")
      constructor_kwargs["base_url"] = base_url

    return provider_class(**constructor_kwargs)

  def get_fetcher(self, provider_name: str, interface_class: type):
    """Creates a provider and returns one of its fetcher components."""
    data_provider = self.create(provider_name)

    if not data_provider.supports(interface_class):
      capability_name = interface_class.__name__.replace("Fetcher", "")
      raise TypeError(
        f"Provider '{provider_name}' does not support fetching {capability_name} data."
      )

    return data_provider.get_fetcher(interface_class)
