"""Tests for error recovery."""

from pathlib import Path

from conftest import make_dirs
from upgrade_analyzer.path_resolution.enums import InstallationType
from upgrade_analyzer.path_resolution.enums import PathType
from upgrade_analyzer.path_resolution.exceptions import ALTERNATIVE_PATH_SEARCH
from upgrade_analyzer.path_resolution.exceptions import CONFIGURATION_UPDATE_SUGGESTION
from upgrade_analyzer.path_resolution.exceptions import CUSTOM_PATH_SEARCH
from upgrade_analyzer.path_resolution.exceptions import DEFAULT_PATH_FALLBACK
from upgrade_analyzer.path_resolution.exceptions import INSTALLATION_TYPE_REDETECTION
from upgrade_analyzer.path_resolution.exceptions import NoCompatibleStrategyError
from upgrade_analyzer.path_resolution.exceptions import PathNotFoundError
from upgrade_analyzer.path_resolution.exceptions import PathResolutionError
from upgrade_analyzer.path_resolution.models import PathConfiguration
from upgrade_analyzer.path_resolution.models import PathResolutionRequest
from upgrade_analyzer.path_resolution.recovery import ErrorRecoveryManager
from upgrade_analyzer.path_resolution.recovery import wrap_unexpected
from upgrade_analyzer.path_resolution.registry import PathResolutionStrategyRegistry
from upgrade_analyzer.path_resolution.strategies import Typo3ConfDirStrategy
from upgrade_analyzer.path_resolution.strategies import WebDirStrategy


def _error_with(*techniques: str, message: str = "Not found") -> PathResolutionError:
    error = PathResolutionError(message)
    for name in techniques:
        error.add_recovery_strategy(name)
    return error


class TestTerminalErrors:
    def test_non_retryable_error_is_terminal(self, composer_standard, make_request):
        request = make_request(composer_standard)
        error = NoCompatibleStrategyError("No compatible strategy", context={"path_type": "extension"})

        response = ErrorRecoveryManager().attempt_recovery(error, request)

        assert response.is_error
        assert response.errors[0] == "No compatible strategy"
        assert response.errors[1].startswith("Context: ")
        assert response.metadata.recovery_attempts == ()

    def test_exhausted_chain_is_an_error(self, tmp_path, make_request):
        config = PathConfiguration(custom_paths={"web-dir": "nowhere"})
        request = make_request(tmp_path, path_type=PathType.WEB_DIR, configuration=config)
        error = _error_with(ALTERNATIVE_PATH_SEARCH, DEFAULT_PATH_FALLBACK, CUSTOM_PATH_SEARCH)

        response = ErrorRecoveryManager().attempt_recovery(error, request)

        assert response.is_error
        assert "All error recovery attempts failed (3 technique(s) tried)" in response.warnings
        assert response.metadata.used_strategy == "error_recovery_failed"


class TestTechniques:
    def test_generic_retryable_error_recovers(self, composer_standard, make_request):
        request = make_request(composer_standard, path_type=PathType.WEB_DIR)
        response = ErrorRecoveryManager().attempt_recovery(PathResolutionError("boom"), request)
        assert response.is_not_found
        assert response.alternative_paths

    def test_alternative_path_search_uses_historical_locations(self, tmp_path, make_request):
        make_dirs(tmp_path, "htdocs/typo3conf/ext/news")
        request = make_request(tmp_path, key="news")
        error = _error_with(ALTERNATIVE_PATH_SEARCH, message="Extension path not found for: news")

        response = ErrorRecoveryManager().attempt_recovery(error, request)

        assert response.is_not_found
        assert response.alternative_paths == (request.installation_path / "htdocs/typo3conf/ext/news",)
        assert response.metadata.used_strategy == "error_recovery_alternative_path_search"
        assert "Extension path not found for: news" in response.warnings
        assert "Alternative paths found through error recovery" in response.warnings

    def test_alternative_path_search_keeps_existing_suggestions(self, composer_standard, make_request):
        request = make_request(composer_standard, path_type=PathType.WEB_DIR)
        suggestion = request.installation_path / "public"
        error = PathNotFoundError("Web dir not found", suggested_paths=[suggestion, Path("/does/not/exist")])

        response = ErrorRecoveryManager().attempt_recovery(error, request)
        assert response.alternative_paths == (suggestion,)

    def test_default_path_fallback(self, composer_standard, make_request):
        request = make_request(composer_standard, path_type=PathType.PACKAGE_STATES)
        response = ErrorRecoveryManager().attempt_recovery(_error_with(DEFAULT_PATH_FALLBACK), request)
        assert response.alternative_paths == (request.installation_path / "public/typo3conf/PackageStates.php",)
        assert "Using default fallback paths" in response.warnings

    def test_custom_path_search(self, tmp_path, make_request):
        make_dirs(tmp_path, "public_html/typo3conf")
        request = make_request(tmp_path, path_type=PathType.WEB_DIR)
        response = ErrorRecoveryManager().attempt_recovery(_error_with(CUSTOM_PATH_SEARCH), request)
        assert response.alternative_paths == (request.installation_path / "public_html",)
        assert "Custom installation paths found" in response.warnings

    def test_configuration_update_suggestion(self, tmp_path, make_request):
        request = make_request(tmp_path, key="news")
        response = ErrorRecoveryManager().attempt_recovery(_error_with(CONFIGURATION_UPDATE_SUGGESTION), request)
        assert response.is_not_found
        assert response.alternative_paths == ()
        assert any("path_configuration.custom_paths" in w for w in response.warnings)
        assert any("path_configuration.search_directories" in w for w in response.warnings)

    def test_installation_type_redetection_reports_mismatch(self, legacy_installation, make_request):
        request = make_request(legacy_installation, path_type=PathType.WEB_DIR)
        response = ErrorRecoveryManager().attempt_recovery(_error_with(INSTALLATION_TYPE_REDETECTION), request)
        assert any("looks like legacy_source" in w for w in response.warnings)

    def test_techniques_run_in_order(self, composer_standard, make_request):
        request = make_request(composer_standard, path_type=PathType.WEB_DIR)
        error = _error_with(CONFIGURATION_UPDATE_SUGGESTION, DEFAULT_PATH_FALLBACK)
        response = ErrorRecoveryManager().attempt_recovery(error, request)
        assert response.metadata.recovery_attempts == (CONFIGURATION_UPDATE_SUGGESTION,)

    def test_unknown_technique_is_skipped(self, composer_standard, make_request):
        request = make_request(composer_standard, path_type=PathType.WEB_DIR)
        response = ErrorRecoveryManager().attempt_recovery(_error_with("teleport", DEFAULT_PATH_FALLBACK), request)
        assert response.metadata.recovery_attempts == (DEFAULT_PATH_FALLBACK,)


class TestFallbackStrategies:
    def _request(self, root: Path, *fallbacks: tuple[str, int]) -> PathResolutionRequest:
        builder = (
            PathResolutionRequest.builder()
            .path_type(PathType.WEB_DIR)
            .installation_path(root)
            .installation_type(InstallationType.COMPOSER_CUSTOM)
            .path_configuration(PathConfiguration(custom_paths={"web-dir": "missing"}))
        )
        for name, priority in fallbacks:
            builder.add_fallback_strategy(name, priority=priority)
        return builder.build()

    def test_fallback_strategy_resolves(self, tmp_path):
        class RootWebStrategy(WebDirStrategy):
            IDENTIFIER = "root_web_strategy"

            def _locate(self, request, layout, trail):
                return self._first_existing([request.installation_path], request, trail)

        registry = PathResolutionStrategyRegistry([WebDirStrategy(), RootWebStrategy()])
        request = self._request(tmp_path, ("unknown_strategy", 90), ("root_web_strategy", 10))
        error = _error_with(ALTERNATIVE_PATH_SEARCH)

        response = ErrorRecoveryManager(registry).attempt_recovery(error, request)

        assert response.is_success
        assert response.resolved_path == request.installation_path
        assert response.metadata.fallback_reason == "fallback_strategy"
        assert response.metadata.recovery_attempts == (ALTERNATIVE_PATH_SEARCH, "root_web_strategy")

    def test_inapplicable_fallback_is_skipped(self, tmp_path):
        registry = PathResolutionStrategyRegistry([Typo3ConfDirStrategy()])
        request = self._request(tmp_path, ("typo3conf_dir_strategy", 50))
        response = ErrorRecoveryManager(registry).attempt_recovery(_error_with(ALTERNATIVE_PATH_SEARCH), request)
        assert response.is_error


class TestWrapUnexpected:
    def test_wraps_with_cause(self, composer_standard, make_request):
        request = make_request(composer_standard)
        original = RuntimeError("disk on fire")
        wrapped = wrap_unexpected(original, request, "web_dir_strategy")

        assert wrapped.retryable
        assert wrapped.__cause__ is original
        assert wrapped.context == {"exception": "RuntimeError", "strategy": "web_dir_strategy"}
        assert "disk on fire" in wrapped.message
