"""
User settings persisted as a JSON file.
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Optional

from .models import CategoryFilterConfig, GroupingMode, ServerConfig
from .notifier import ChangeNotifier
from .storage import Storage

SETTINGS_FILENAME = "settings.json"
DATA_DIR_ENV = "FEEDHUB_DATA_DIRECTORY"

DEFAULT_API_BASE_URL = "https://zenfeed.xyz/"
DEFAULT_BACKEND_URL = "http://zenfeed:1300"
DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    """Immutable snapshot of the current settings."""

    api_base_url: str = DEFAULT_API_BASE_URL
    backend_url: str = DEFAULT_BACKEND_URL
    server_configs: List[ServerConfig] = field(default_factory=list)
    grouping_mode: str = GroupingMode.CATEGORY
    category_filter_configs: List[CategoryFilterConfig] = field(
        default_factory=list
    )
    title_filter_keywords: str = ""
    auto_download_to_local: bool = True
    image_cache_enabled: bool = True
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Create Settings from a dictionary, ignoring unknown keys."""
        defaults = cls()
        return cls(
            api_base_url=data.get("api_base_url", defaults.api_base_url),
            backend_url=data.get("backend_url", defaults.backend_url),
            server_configs=[
                ServerConfig.from_dict(item)
                for item in data.get("server_configs", [])
            ],
            grouping_mode=data.get("grouping_mode", defaults.grouping_mode),
            category_filter_configs=[
                CategoryFilterConfig.from_dict(item)
                for item in data.get("category_filter_configs", [])
            ],
            title_filter_keywords=data.get(
                "title_filter_keywords", defaults.title_filter_keywords
            ),
            auto_download_to_local=bool(
                data.get(
                    "auto_download_to_local", defaults.auto_download_to_local
                )
            ),
            image_cache_enabled=bool(
                data.get("image_cache_enabled", defaults.image_cache_enabled)
            ),
            request_timeout=float(
                data.get("request_timeout", defaults.request_timeout)
            ),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "api_base_url": self.api_base_url,
            "backend_url": self.backend_url,
            "server_configs": [c.to_json() for c in self.server_configs],
            "grouping_mode": self.grouping_mode,
            "category_filter_configs": [
                c.to_json() for c in self.category_filter_configs
            ],
            "title_filter_keywords": self.title_filter_keywords,
            "auto_download_to_local": self.auto_download_to_local,
            "image_cache_enabled": self.image_cache_enabled,
            "request_timeout": self.request_timeout,
        }


class SettingsStore:
    """Loads, updates and publishes settings."""

    def __init__(self, storage: Storage, path: Optional[str] = None):
        self.storage = storage
        self.path = path or storage.join_path(
            storage.base_dir, SETTINGS_FILENAME
        )
        self.changed = ChangeNotifier("settings")
        self.logger = logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._current = self._load()

    def current(self) -> Settings:
        with self._lock:
            return self._current

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        return self.changed.subscribe(listener)

    def update(self, **changes: Any) -> Settings:
        """Replace some settings, persist and notify subscribers."""
        if "grouping_mode" in changes and (
            changes["grouping_mode"] not in GroupingMode.ALL
        ):
            raise ValueError(
                f"Unknown grouping mode: {changes['grouping_mode']}"
            )
        with self._lock:
            try:
                updated = replace(self._current, **changes)
            except TypeError as e:
                raise ValueError(f"Unknown setting: {e}") from e
            if updated == self._current:
                return updated
            self._save(updated)
            self._current = updated
        self.changed.notify()
        return updated

    def save_server_configs(self, configs: Iterable[ServerConfig]) -> Settings:
        return self.update(server_configs=list(configs))

    def add_server_config(self, config: ServerConfig) -> Settings:
        with self._lock:
            configs = [
                c for c in self._current.server_configs if c.id != config.id
            ]
            configs.append(config)
            return self.save_server_configs(configs)

    def remove_server_config(self, server_id: str) -> Settings:
        with self._lock:
            return self.save_server_configs(
                c for c in self._current.server_configs if c.id != server_id
            )

    def update_category_config(
        self,
        category_name: str,
        show_in_all: Optional[bool] = None,
        show_group: Optional[bool] = None,
        sort_order: Optional[int] = None,
    ) -> Settings:
        """Change one label's config, creating it if unconfigured."""
        with self._lock:
            configs = list(self._current.category_filter_configs)
            index = next(
                (
                    i
                    for i, c in enumerate(configs)
                    if c.category_name == category_name
                ),
                -1,
            )
            config = (
                configs[index]
                if index >= 0
                else CategoryFilterConfig(category_name)
            )
            config = CategoryFilterConfig(
                category_name=category_name,
                show_in_all=(
                    config.show_in_all if show_in_all is None else show_in_all
                ),
                show_group=(
                    config.show_group if show_group is None else show_group
                ),
                sort_order=(
                    config.sort_order if sort_order is None else sort_order
                ),
            )
            if index >= 0:
                configs[index] = config
            else:
                configs.append(config)
            return self.update(category_filter_configs=configs)

    def ensure_category_configs(self, names: Iterable[str]) -> Settings:
        """Add default configs for labels seen for the first time."""
        with self._lock:
            configs = list(self._current.category_filter_configs)
            known = {c.category_name for c in configs}
            added = False
            for name in names:
                if name and name not in known:
                    configs.append(CategoryFilterConfig(name))
                    known.add(name)
                    added = True
            if not added:
                return self._current
            return self.update(category_filter_configs=configs)

    def _load(self) -> Settings:
        data = self.storage.read_json(self.path)
        if not data:
            return Settings()
        try:
            return Settings.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error("Invalid settings file %s: %s", self.path, e)
            return Settings()

    def _save(self, settings: Settings) -> None:
        if not self.storage.write_json(self.path, settings.to_json()):
            raise OSError(f"Could not write settings to {self.path}")
