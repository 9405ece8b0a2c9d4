import json

import pytest

from tile_spider.errors import ConfigurationError
from tile_spider.providers import ProviderManager, TileProvider, format_template


def test_format_template_replaces_every_occurrence():
    url = format_template("{z}/{x}/{y}/{x}", {"x": 3, "y": 4, "z": 5})
    assert url == "5/3/4/3"


def test_format_template_leaves_unknown_placeholders():
    assert format_template("{x}-{q}", {"x": 1}) == "1-{q}"


def test_format_template_does_not_touch_its_input():
    template = "https://{s}.example.com/{z}/{x}/{y}.png"
    format_template(template, {"s": "a", "x": 1, "y": 2, "z": 3})
    assert template == "https://{s}.example.com/{z}/{x}/{y}.png"


def test_tile_url_uses_configured_shards():
    provider = TileProvider("t", "https://t{s}.example.com/{z}/{x}/{y}.png", subdomains=["1", "2", "3", "4"])
    seen = set()
    for _ in range(200):
        url = provider.get_tile_url(3, 2, 4)
        assert url.endswith("example.com/4/3/2.png")
        seen.add(url.split(".")[0])
    assert seen <= {"https://t1", "https://t2", "https://t3", "https://t4"}
    assert len(seen) > 1


def test_shard_count_comes_from_provider():
    provider = TileProvider("t", "https://{s}.example.com/{z}/{x}/{y}", subdomains=["only"])
    assert provider.get_tile_url(0, 0, 0) == "https://only.example.com/0/0/0"


def test_shard_placeholder_without_subdomains_is_rejected():
    with pytest.raises(ConfigurationError):
        TileProvider("t", "https://{s}.example.com/{z}/{x}/{y}")


def test_default_provider_has_four_shards():
    provider = ProviderManager.get_provider("default")
    assert provider.subdomains == ["1", "2", "3", "4"]
    assert "{s}" in provider.url_template


def test_unknown_provider_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        ProviderManager.get_provider("nope")
    with pytest.raises(ValueError):
        ProviderManager.get_provider("nope")


def test_lookup_is_case_insensitive():
    assert ProviderManager.get_provider("OSM").name == "osm"


def test_create_custom_provider_registers_it():
    ProviderManager.create_custom_provider("mine", "https://example.com/{z}/{x}/{y}.jpg")
    assert "mine" in ProviderManager.list_providers()
    assert ProviderManager.get_provider("mine").get_tile_url(1, 2, 3) == "https://example.com/3/1/2.jpg"


def test_load_providers_from_json(tmp_path):
    config = tmp_path / "providers.json"
    config.write_text(json.dumps({
        "plain": "https://plain.example.com/{z}/{x}/{y}.png",
        "google": {"url": "https://mt{s}.google.com/vt?x={x}&y={y}&z={z}", "subdomains": [0, 1, 2, 3]},
    }), encoding="utf-8")

    loaded = ProviderManager.load_providers(config)

    assert loaded == ["plain", "google"]
    google = ProviderManager.get_provider("google")
    assert google.subdomains == ["0", "1", "2", "3"]
    assert google.get_tile_url(1, 2, 3).endswith("x=1&y=2&z=3")


@pytest.mark.parametrize("content", ["not json", "[]", json.dumps({"broken": {"subdomains": []}})])
def test_load_providers_rejects_bad_files(tmp_path, content):
    config = tmp_path / "providers.json"
    config.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ProviderManager.load_providers(config)


def test_load_providers_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        ProviderManager.load_providers(tmp_path / "missing.json")
