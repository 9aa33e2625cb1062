"""Tests for request/response value types and the request builder."""

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from upgrade_analyzer.path_resolution.enums import InstallationType
from upgrade_analyzer.path_resolution.enums import PathType
from upgrade_analyzer.path_resolution.enums import ResolutionStatus
from upgrade_analyzer.path_resolution.exceptions import ConstructionError
from upgrade_analyzer.path_resolution.models import CacheOptions
from upgrade_analyzer.path_resolution.models import ExtensionIdentifier
from upgrade_analyzer.path_resolution.models import PathConfiguration
from upgrade_analyzer.path_resolution.models import PathResolutionMetadata
from upgrade_analyzer.path_resolution.models import PathResolutionRequest
from upgrade_analyzer.path_resolution.models import PathResolutionResponse


def _metadata(path_type: PathType = PathType.WEB_DIR) -> PathResolutionMetadata:
    return PathResolutionMetadata(
        path_type=path_type,
        installation_type=InstallationType.COMPOSER_STANDARD,
        used_strategy="web_dir_strategy",
        strategy_priority=75,
        attempted_paths=(Path("/site/composer.json"), Path("/site/public")),
        strategy_chain=("web_dir_strategy",),
    )


class TestPathConfiguration:
    def test_defaults(self):
        config = PathConfiguration.default()
        assert config.custom_paths == {}
        assert config.follow_symlinks is True
        assert config.validate_exists is True
        assert config.max_depth == 10

    def test_is_frozen(self):
        config = PathConfiguration(custom_paths={"web-dir": "web"})
        with pytest.raises(FrozenInstanceError):
            config.max_depth = 3  # type: ignore[misc]
        with pytest.raises(TypeError):
            config.custom_paths["web-dir"] = "htdocs"  # type: ignore[index]

    def test_source_dict_mutation_does_not_leak(self):
        source = {"web-dir": "web"}
        config = PathConfiguration(custom_paths=source)
        source["web-dir"] = "htdocs"
        assert config.get_custom_path("web-dir") == "web"

    def test_with_changes_copies(self):
        config = PathConfiguration()
        changed = config.with_changes(max_depth=3, search_directories=("packages",))
        assert config.max_depth == 10
        assert changed.max_depth == 3
        assert changed.search_directories == ("packages",)

    def test_from_dict_accepts_camel_case(self):
        config = PathConfiguration.from_dict(
            {"customPaths": {"vendor-dir": "libs"}, "searchDirectories": ["packages"], "maxDepth": 4}
        )
        assert config.get_custom_path("vendor-dir") == "libs"
        assert config.search_directories == ("packages",)
        assert config.max_depth == 4

    def test_to_dict_from_dict(self):
        config = PathConfiguration(custom_paths={"web-dir": "web"}, exclude_patterns=("*.bak",), follow_symlinks=False)
        assert PathConfiguration.from_dict(config.to_dict()) == config

    def test_is_excluded_matches_name_and_full_path(self):
        config = PathConfiguration(exclude_patterns=("*_old", "*/backup/*"))
        assert config.is_excluded(Path("/site/typo3conf/ext/news_old"))
        assert config.is_excluded(Path("/site/backup/typo3conf"))
        assert not config.is_excluded(Path("/site/typo3conf/ext/news"))


class TestRequestBuilder:
    def test_build_resolves_installation_path(self, composer_standard, monkeypatch):
        monkeypatch.chdir(composer_standard.parent)
        request = (
            PathResolutionRequest.builder()
            .path_type(PathType.WEB_DIR)
            .installation_path(composer_standard.name)
            .installation_type(InstallationType.COMPOSER_STANDARD)
            .build()
        )
        assert request.installation_path == composer_standard.resolve()
        assert request.path_configuration == PathConfiguration.default()
        assert request.cache_options == CacheOptions()

    def test_rejects_missing_installation_path(self, tmp_path):
        with pytest.raises(ConstructionError, match="does not exist"):
            PathResolutionRequest.builder().installation_path(tmp_path / "missing")

    def test_rejects_missing_fields(self):
        with pytest.raises(ConstructionError, match="installation_path, installation_type"):
            PathResolutionRequest.builder().path_type(PathType.WEB_DIR).build()

    def test_rejects_incompatible_types(self, legacy_installation):
        builder = (
            PathResolutionRequest.builder()
            .path_type(PathType.VENDOR_DIR)
            .installation_path(legacy_installation)
            .installation_type(InstallationType.LEGACY_SOURCE)
        )
        with pytest.raises(ConstructionError, match="not compatible"):
            builder.build()

    def test_construction_error_is_value_error(self):
        assert issubclass(ConstructionError, ValueError)

    def test_collects_rules_and_fallbacks(self, composer_standard):
        request = (
            PathResolutionRequest.builder()
            .path_type(PathType.WEB_DIR)
            .installation_path(composer_standard)
            .installation_type(InstallationType.COMPOSER_STANDARD)
            .add_validation_rule("min_path_length", {"length": 3})
            .add_fallback_strategy("typo3conf_dir_strategy", priority=5)
            .build()
        )
        assert request.validation_rules[0].name == "min_path_length"
        assert request.validation_rules[0].parameters == {"length": 3}
        assert request.fallback_strategies[0].strategy == "typo3conf_dir_strategy"
        assert request.fallback_strategies[0].priority == 5


class TestCacheKey:
    def test_deterministic(self, composer_standard, make_request):
        assert make_request(composer_standard).cache_key == make_request(composer_standard).cache_key

    def test_format(self, composer_standard, make_request):
        key = make_request(composer_standard).cache_key
        parts = key.split(":")
        assert parts[:3] == ["path_resolution", "extension", "composer_standard"]
        assert len(parts) == 5
        assert all(len(p) == 64 for p in parts[3:])

    def test_differs_per_extension(self, composer_standard, make_request):
        news = make_request(composer_standard, key="news")
        blog = make_request(composer_standard, key="blog")
        assert news.cache_key != blog.cache_key

    def test_differs_per_configuration(self, composer_standard, make_request):
        plain = make_request(composer_standard)
        configured = make_request(composer_standard, configuration=PathConfiguration(search_directories=("packages",)))
        assert plain.cache_key != configured.cache_key

    def test_with_installation_type_changes_key(self, composer_standard, make_request):
        request = make_request(composer_standard)
        auto = request.with_installation_type(InstallationType.AUTO_DETECT)
        assert auto.installation_type == InstallationType.AUTO_DETECT
        assert auto.cache_key != request.cache_key

    def test_with_extension_identifier(self, composer_standard, make_request):
        request = make_request(composer_standard).with_extension_identifier(ExtensionIdentifier("blog"))
        assert request.extension_identifier == ExtensionIdentifier("blog")


class TestResponse:
    def test_success_requires_path(self):
        with pytest.raises(ValueError):
            PathResolutionResponse(ResolutionStatus.SUCCESS, PathType.WEB_DIR, None, _metadata())

    def test_not_found_cannot_carry_path(self):
        with pytest.raises(ValueError):
            PathResolutionResponse(ResolutionStatus.NOT_FOUND, PathType.WEB_DIR, Path("/x"), _metadata())

    def test_predicates(self):
        success = PathResolutionResponse.success(PathType.WEB_DIR, Path("/site/public"), _metadata(), warnings=["w"])
        assert success.is_success and not success.is_error and not success.is_not_found
        assert success.has_warnings and not success.has_errors

        error = PathResolutionResponse.error(PathType.WEB_DIR, _metadata(), errors=["boom"])
        assert error.is_error and error.has_errors
        assert error.resolved_path is None

    def test_cacheability(self):
        metadata = _metadata()
        assert PathResolutionResponse.success(PathType.WEB_DIR, Path("/a"), metadata).is_cacheable
        assert PathResolutionResponse.not_found(PathType.WEB_DIR, metadata, alternative_paths=[Path("/b")]).is_cacheable
        assert not PathResolutionResponse.not_found(PathType.WEB_DIR, metadata).is_cacheable
        assert not PathResolutionResponse.error(PathType.WEB_DIR, metadata, errors=["x"]).is_cacheable

    def test_best_alternative(self):
        response = PathResolutionResponse.not_found(
            PathType.WEB_DIR, _metadata(), alternative_paths=[Path("/first"), Path("/second")]
        )
        assert response.best_alternative == Path("/first")
        assert PathResolutionResponse.not_found(PathType.WEB_DIR, _metadata()).best_alternative is None

    def test_with_timing_and_mark_from_cache(self):
        response = PathResolutionResponse.success(PathType.WEB_DIR, Path("/a"), _metadata())
        stamped = response.with_timing("key", 0.25).mark_from_cache(0.5)
        assert stamped.cache_key == "key"
        assert stamped.resolution_time == 0.25
        assert stamped.metadata.was_from_cache is True
        assert stamped.metadata.cache_hit_ratio == 0.5
        assert response.metadata.was_from_cache is False

    def test_with_warnings_prepends_without_duplicates(self):
        response = PathResolutionResponse.success(PathType.WEB_DIR, Path("/a"), _metadata(), warnings=["b", "c"])
        assert response.with_warnings(["a", "b"]).warnings == ("a", "b", "c")

    def test_dict_round_trip(self):
        response = PathResolutionResponse.not_found(
            PathType.EXTENSION,
            _metadata(PathType.EXTENSION),
            alternative_paths=[Path("/site/web/typo3conf/ext/news")],
            warnings=["Alternative paths found"],
            cache_key="k",
            resolution_time=0.01,
        )
        data = response.to_dict()
        assert data["status"] == "not_found"
        assert data["alternative_paths"] == ["/site/web/typo3conf/ext/news"]
        assert PathResolutionResponse.from_dict(data) == response
