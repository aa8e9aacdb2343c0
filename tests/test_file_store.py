import json

import pytest

from ckan_config import file_store
from ckan_config.config_schema import ConfigurationModel, InstanceEntry
from ckan_config.errors import ConfigNotFoundError, ConfigParseError, ConfigWriteError


def _populated_model():
    return ConfigurationModel(
        auto_start_instance="Career",
        download_cache_dir="/var/cache/ckan",
        cache_size_limit=5_000_000_000,
        refresh_rate=15,
        ksp_builds={"builds": {"1.12.5.3190": "1.12.5"}},
        ksp_instances=[
            InstanceEntry(name="Career", path="/games/ksp"),
            InstanceEntry(name="Sandbox", path="/games/ksp-sandbox"),
        ],
        auth_tokens={"github.com": "gh-token", "spacedock.info": "sd-token"},
    )


def test_round_trip(tmp_path):
    model = _populated_model()
    path = tmp_path / "config.json"

    file_store.save(path, model)

    assert file_store.load(path) == model


def test_round_trip_default_model(tmp_path):
    path = tmp_path / "config.json"

    file_store.save(path, ConfigurationModel())

    assert file_store.load(path) == ConfigurationModel()


def test_save_writes_indented_aliases(tmp_path):
    path = tmp_path / "config.json"

    file_store.save(path, _populated_model())

    text = path.read_text(encoding="utf-8")
    assert '\n    "AutoStartInstance": "Career"' in text
    payload = json.loads(text)
    assert list(payload) == [
        "AutoStartInstance",
        "DownloadCacheDir",
        "CacheSizeLimit",
        "RefreshRate",
        "KSPBuilds",
        "KspInstances",
        "AuthTokens",
    ]
    assert payload["KspInstances"][0] == {"Name": "Career", "Path": "/games/ksp"}


def test_save_creates_parent_directory_and_leaves_no_temp_file(tmp_path):
    path = tmp_path / "nested" / "deeper" / "config.json"

    file_store.save(path, ConfigurationModel())

    assert path.exists()
    assert not path.with_name("config.json.tmp").exists()


def test_save_failure_raises_write_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(ConfigWriteError):
        file_store.save(blocker / "config.json", ConfigurationModel())


def test_save_rejects_unserializable_build_map(tmp_path):
    path = tmp_path / "config.json"
    file_store.save(path, ConfigurationModel())
    before = path.read_text(encoding="utf-8")

    with pytest.raises(ConfigWriteError):
        file_store.save(path, ConfigurationModel(ksp_builds=object()))

    assert path.read_text(encoding="utf-8") == before


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigNotFoundError):
        file_store.load(tmp_path / "config.json")


def test_load_missing_directory(tmp_path):
    with pytest.raises(ConfigNotFoundError):
        file_store.load(tmp_path / "absent" / "config.json")


@pytest.mark.parametrize(
    "content",
    [
        "{ not json",
        "[1, 2, 3]",
        '"just a string"',
        '{"KspInstances": "not a list"}',
        '{"AuthTokens": {"github.com": 42}}',
        '{"CacheSizeLimit": "lots"}',
        '{"KspInstances": [{"Name": "Career"}]}',
    ],
)
def test_load_rejects_malformed_documents(tmp_path, content):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigParseError) as excinfo:
        file_store.load(path)

    assert excinfo.value.path == path
    assert path.read_text(encoding="utf-8") == content


@pytest.mark.parametrize("content", ["null", "", "   \n"])
def test_load_blank_or_null_document_yields_defaults(tmp_path, content):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")

    assert file_store.load(path) == ConfigurationModel()


def test_load_tolerates_nulls_and_unknown_fields(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "AutoStartInstance": None,
                "KspInstances": None,
                "AuthTokens": None,
                "SomethingNew": {"nested": True},
            }
        ),
        encoding="utf-8",
    )

    model = file_store.load(path)

    assert model.ksp_instances == []
    assert model.auth_tokens == {}
    assert model.auto_start_instance is None


def test_load_accepts_byte_order_mark(tmp_path):
    path = tmp_path / "config.json"
    path.write_bytes(b"\xef\xbb\xbf" + json.dumps({"RefreshRate": 5}).encode("utf-8"))

    assert file_store.load(path).refresh_rate == 5


def test_load_does_not_renormalize_values(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"CacheSizeLimit": -1, "RefreshRate": 0}), encoding="utf-8")

    model = file_store.load(path)

    assert model.cache_size_limit == -1
    assert model.refresh_rate == 0
