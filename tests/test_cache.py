"""Tests for the memory and persistent resolution cache layers."""

import json
from pathlib import Path

import pytest

from upgrade_analyzer.path_resolution.cache import CacheStats
from upgrade_analyzer.path_resolution.cache import JsonFileCacheLayer
from upgrade_analyzer.path_resolution.cache import MemoryCacheLayer
from upgrade_analyzer.path_resolution.cache import MultiLayerPathResolutionCache
from upgrade_analyzer.path_resolution.cache import PathResolutionCache
from upgrade_analyzer.path_resolution.enums import InstallationType
from upgrade_analyzer.path_resolution.enums import PathType
from upgrade_analyzer.path_resolution.models import CacheOptions
from upgrade_analyzer.path_resolution.models import PathResolutionMetadata
from upgrade_analyzer.path_resolution.models import PathResolutionRequest
from upgrade_analyzer.path_resolution.models import PathResolutionResponse


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _response(path: str = "/site/public") -> PathResolutionResponse:
    metadata = PathResolutionMetadata(
        path_type=PathType.WEB_DIR,
        installation_type=InstallationType.COMPOSER_STANDARD,
        used_strategy="web_dir_strategy",
    )
    return PathResolutionResponse.success(PathType.WEB_DIR, Path(path), metadata)


def _request(root: Path, **cache_options) -> PathResolutionRequest:
    return (
        PathResolutionRequest.builder()
        .path_type(PathType.WEB_DIR)
        .installation_path(root)
        .installation_type(InstallationType.COMPOSER_STANDARD)
        .cache_options(CacheOptions(**cache_options))
        .build()
    )


class TestCacheStats:
    def test_hit_ratio(self):
        assert CacheStats().hit_ratio == 0.0
        assert CacheStats(hits=3, misses=1).hit_ratio == 0.75
        assert CacheStats(hits=1, misses=2).to_dict()["hit_ratio"] == 0.3333


class TestMemoryCacheLayer:
    def test_expiry(self):
        clock = FakeClock()
        layer = MemoryCacheLayer(clock=clock)
        layer.put("k", _response(), ttl_seconds=10)
        assert layer.get("k") is not None

        clock.now += 10
        assert layer.get("k") is None
        assert len(layer) == 0

    def test_lru_eviction(self):
        layer = MemoryCacheLayer(max_entries=2)
        layer.put("a", _response("/a"), 60)
        layer.put("b", _response("/b"), 60)
        layer.get("a")
        layer.put("c", _response("/c"), 60)

        assert layer.get("b") is None
        assert layer.get("a") is not None
        assert layer.evictions == 1


class TestJsonFileCacheLayer:
    def test_round_trip_and_document_format(self, tmp_path):
        layer = JsonFileCacheLayer(tmp_path / "cache", clock=FakeClock())
        layer.put("key", _response(), ttl_seconds=30)

        [entry] = layer.entries()
        document = json.loads(entry.read_text())
        assert document["key"] == "key"
        assert document["expires_at"] == 1030.0
        assert layer.get("key") == _response()
        assert layer.size_bytes() > 0

    def test_expired_entry_is_removed(self, tmp_path):
        clock = FakeClock()
        layer = JsonFileCacheLayer(tmp_path, clock=clock)
        layer.put("key", _response(), ttl_seconds=5)
        clock.now += 5
        assert layer.get("key") is None
        assert layer.entries() == []

    def test_corrupt_entry_is_a_miss(self, tmp_path):
        layer = JsonFileCacheLayer(tmp_path)
        layer.put("key", _response(), ttl_seconds=60)
        layer.entries()[0].write_text("{broken")
        assert layer.get("key") is None

    def test_clear(self, tmp_path):
        cache_dir = tmp_path / "cache"
        layer = JsonFileCacheLayer(cache_dir)
        layer.put("key", _response(), ttl_seconds=60)
        leftover = layer.entries()[0].with_suffix(".tmp")
        leftover.write_text("{", encoding="utf-8")
        (cache_dir / "notes.txt").write_text("keep me", encoding="utf-8")
        (cache_dir / "settings.json").write_text("{}", encoding="utf-8")

        layer.clear()

        assert layer.entries() == []
        assert not leftover.exists()
        assert cache_dir.is_dir()
        assert (cache_dir / "notes.txt").read_text(encoding="utf-8") == "keep me"
        assert (cache_dir / "settings.json").exists()

    def test_entries_ignore_foreign_files(self, tmp_path):
        layer = JsonFileCacheLayer(tmp_path)
        (tmp_path / "composer.json").write_text("{}", encoding="utf-8")
        layer.put("key", _response(), ttl_seconds=60)
        assert len(layer.entries()) == 1


class TestMultiLayerCache:
    def test_satisfies_protocol(self):
        assert isinstance(MultiLayerPathResolutionCache(), PathResolutionCache)

    def test_should_cache(self, composer_standard):
        cache = MultiLayerPathResolutionCache()
        assert cache.should_cache(_request(composer_standard))
        assert not cache.should_cache(_request(composer_standard, enabled=False))
        auto = _request(composer_standard).with_installation_type(InstallationType.AUTO_DETECT)
        assert not cache.should_cache(auto)

    def test_requests_with_validation_rules_bypass(self, composer_standard):
        request = (
            PathResolutionRequest.builder()
            .path_type(PathType.WEB_DIR)
            .installation_path(composer_standard)
            .installation_type(InstallationType.COMPOSER_STANDARD)
            .add_validation_rule("min_path_length", {"length": 2})
            .build()
        )
        assert not MultiLayerPathResolutionCache().should_cache(request)

    def test_hits_and_misses(self, composer_standard):
        cache = MultiLayerPathResolutionCache()
        request = _request(composer_standard)
        assert cache.get(request) is None
        cache.put(request, _response())
        assert cache.get(request) == _response()

        stats = cache.stats()
        assert (stats.hits, stats.misses, stats.memory_entries) == (1, 1, 1)

    def test_error_responses_are_not_stored(self, composer_standard):
        cache = MultiLayerPathResolutionCache()
        request = _request(composer_standard)
        error = PathResolutionResponse.error(PathType.WEB_DIR, _response().metadata, errors=["boom"])
        cache.put(request, error)
        assert cache.get(request) is None

    def test_persistent_hit_is_promoted(self, composer_standard, tmp_path):
        persistent = JsonFileCacheLayer(tmp_path / "cache")
        request = _request(composer_standard, use_persistent_cache=True)
        MultiLayerPathResolutionCache(persistent=persistent).put(request, _response())

        fresh = MultiLayerPathResolutionCache(persistent=persistent)
        assert fresh.get(request) == _response()
        assert fresh.stats().persistent_hits == 1
        assert len(fresh.memory) == 1

    @pytest.mark.parametrize("use_persistent", [False, True])
    def test_clear_resets_everything(self, composer_standard, tmp_path, use_persistent):
        persistent = JsonFileCacheLayer(tmp_path / "cache")
        cache = MultiLayerPathResolutionCache(persistent=persistent)
        request = _request(composer_standard, use_persistent_cache=use_persistent)
        cache.put(request, _response())
        cache.get(request)

        cache.clear()
        assert cache.stats() == CacheStats()
        assert persistent.entries() == []
