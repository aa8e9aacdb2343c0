import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from ckan_config import config_manager, paths  # noqa: E402
from ckan_config.errors import LegacyEnumerationError  # noqa: E402
from ckan_config.legacy_source import NullLegacySource  # noqa: E402


class FakeLegacySource:
    """In-memory legacy source; ``failing`` names attributes that raise."""

    def __init__(
        self,
        *,
        instances=None,
        ksp_builds=None,
        auto_start_instance="",
        download_cache_dir=None,
        cache_size_limit=None,
        refresh_rate=None,
        tokens=None,
        hosts=None,
        present=True,
        failing=(),
    ):
        self.instances = list(instances or [])
        self.ksp_builds = ksp_builds
        self._auto_start_instance = auto_start_instance
        self._download_cache_dir = download_cache_dir
        self._cache_size_limit = cache_size_limit
        self._refresh_rate = refresh_rate
        self.tokens = dict(tokens or {})
        self.hosts = list(hosts) if hosts is not None else list(self.tokens)
        self.present = present
        self.failing = set(failing)
        self.calls = {"get_instances": 0, "delete_all_keys": 0}

    def _check(self, name):
        if name in self.failing:
            if name in {"get_instances", "get_auth_token_hosts"}:
                raise LegacyEnumerationError(f"{name} unavailable")
            raise OSError(f"{name} unreadable")

    def exists(self):
        return self.present

    def get_instances(self):
        self.calls["get_instances"] += 1
        self._check("get_instances")
        return list(self.instances)

    def get_ksp_builds(self):
        self._check("get_ksp_builds")
        return self.ksp_builds

    @property
    def auto_start_instance(self):
        self._check("auto_start_instance")
        return self._auto_start_instance

    @property
    def download_cache_dir(self):
        self._check("download_cache_dir")
        return self._download_cache_dir

    @property
    def cache_size_limit(self):
        self._check("cache_size_limit")
        return self._cache_size_limit

    @property
    def refresh_rate(self):
        self._check("refresh_rate")
        return self._refresh_rate

    def get_auth_token_hosts(self):
        self._check("get_auth_token_hosts")
        return list(self.hosts)

    def try_get_auth_token(self, host):
        self._check("try_get_auth_token")
        if host in self.tokens:
            return True, self.tokens[host]
        return False, ""

    def delete_all_keys(self):
        self.calls["delete_all_keys"] += 1


class FakeInstance:
    def __init__(self, directory):
        self._directory = directory

    def game_dir(self):
        return self._directory


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep every test away from the real profile and registry."""

    data_dir = tmp_path / "appdata" / "CKAN"
    monkeypatch.delenv("CKAN_CONFIG_FILE", raising=False)
    monkeypatch.setattr(paths, "user_data_dir", lambda *a, **k: str(data_dir))
    monkeypatch.setattr(config_manager, "detect_legacy_source", NullLegacySource)
    config_manager.reset_store()
    yield data_dir
    config_manager.reset_store()


@pytest.fixture()
def config_path(tmp_path) -> Path:
    return tmp_path / "profile" / "config.json"


@pytest.fixture()
def legacy_source():
    return FakeLegacySource(
        instances=[("Career", "/games/ksp")],
        ksp_builds={"builds": {"1.12.5.3190": "1.12.5"}},
        auto_start_instance="Career",
        download_cache_dir="/var/cache/ckan",
        cache_size_limit=1024,
        refresh_rate=15,
        tokens={"github.com": "gh-token"},
        hosts=["github.com", "spacedock.info"],
    )


@pytest.fixture()
def make_legacy_source():
    return FakeLegacySource


@pytest.fixture()
def make_instance():
    return FakeInstance
