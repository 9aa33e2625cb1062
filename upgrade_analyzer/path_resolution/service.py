"""Path resolution service.

Orchestrates: validate -> cache lookup -> strategy selection and execution
-> cache store, handing any resolution failure to the ErrorRecoveryManager.
No resolution exception escapes ``resolve_path``.
"""

import logging
import time
from pathlib import Path
from typing import Any

from .cache import CacheStats
from .cache import PathResolutionCache
from .enums import InstallationType
from .enums import PathType
from .exceptions import DEFAULT_RECOVERY_CHAIN
from .exceptions import PathResolutionError
from .models import PathResolutionMetadata
from .models import PathResolutionRequest
from .models import PathResolutionResponse
from .recovery import ErrorRecoveryManager
from .recovery import wrap_unexpected
from .registry import PathResolutionStrategyRegistry
from .validator import PathResolutionValidator

logger = logging.getLogger(__name__)


class PathResolutionService:
    """Single and batch path resolution.

    Args:
        registry: Registered strategies
        validator: Pre-flight validator (default: PathResolutionValidator)
        cache: Resolution cache; None disables caching
        recovery: Error recovery manager (default: one bound to ``registry``)
    """

    def __init__(
        self,
        registry: PathResolutionStrategyRegistry,
        validator: PathResolutionValidator | None = None,
        cache: PathResolutionCache | None = None,
        recovery: ErrorRecoveryManager | None = None,
    ):
        self.registry = registry
        self.validator = validator or PathResolutionValidator()
        self.cache = cache
        self.recovery = recovery or ErrorRecoveryManager(registry)

    def resolve_path(self, request: PathResolutionRequest) -> PathResolutionResponse:
        """Resolve a single request.

        Every response is stamped with the request's cache key and the
        wall-clock resolution time, including cache hits.
        """
        started = time.perf_counter()
        cache_key = request.cache_key

        validation = self.validator.validate(request)
        if not validation.is_valid:
            logger.info(
                f"Request rejected by validation: {'; '.join(validation.errors)}",
                extra={"event": "path_resolution.validation_failed", "path_type": request.path_type.value},
            )
            metadata = PathResolutionMetadata(
                path_type=request.path_type,
                installation_type=request.installation_type,
                used_strategy="validation",
                fallback_reason="validation_failed",
            )
            response = PathResolutionResponse.error(
                request.path_type, metadata, errors=validation.errors, warnings=validation.warnings
            )
            return response.with_timing(cache_key, time.perf_counter() - started)

        use_cache = self.cache is not None and self.cache.should_cache(request)
        if use_cache:
            assert self.cache is not None
            cached = self.cache.get(request)
            if cached is not None:
                logger.debug(
                    f"[paths:cache] hit {request.path_type.value}",
                    extra={"event": "path_resolution.cache_hit", "cache_key": cache_key},
                )
                cached = cached.mark_from_cache(self.cache.stats().hit_ratio)
                return cached.with_timing(cache_key, time.perf_counter() - started)
            logger.debug(
                f"[paths:cache] miss {request.path_type.value}",
                extra={"event": "path_resolution.cache_miss", "cache_key": cache_key},
            )

        response = self._execute(request)
        if validation.warnings:
            response = response.with_warnings(validation.warnings)

        if use_cache and response.is_cacheable:
            assert self.cache is not None
            self.cache.put(request, response)

        return response.with_timing(cache_key, time.perf_counter() - started)

    def _execute(self, request: PathResolutionRequest) -> PathResolutionResponse:
        strategy_id = None
        try:
            strategy = self.registry.select_strategy(request)
            strategy_id = strategy.identifier()
            logger.info(
                f"Resolving {request.path_type.value} with {strategy_id}",
                extra={
                    "event": "path_resolution.strategy_selected",
                    "strategy": strategy_id,
                    "path_type": request.path_type.value,
                    "installation_type": request.installation_type.value,
                },
            )
            return strategy.resolve(request)
        except PathResolutionError as e:
            if e.request is None:
                e.request = request
            return self.recovery.attempt_recovery(e, request)
        except Exception as e:
            logger.warning(f"Strategy {strategy_id} raised {type(e).__name__}: {e}")
            return self.recovery.attempt_recovery(wrap_unexpected(e, request, strategy_id), request)

    def resolve_multiple_paths(self, requests: list[PathResolutionRequest]) -> list[PathResolutionResponse]:
        """Resolve a batch, grouped by installation path.

        Requests against the same installation run back to back so the cache
        and manifest memo warm across the group. Output order matches input
        order. An unexpected failure fills that slot with an ERROR response.
        """
        if not requests:
            return []

        groups: dict[Path, list[int]] = {}
        for index, request in enumerate(requests):
            groups.setdefault(request.installation_path, []).append(index)

        results: list[PathResolutionResponse | None] = [None] * len(requests)
        successes = failures = cache_hits = 0

        for installation_path, indices in groups.items():
            logger.debug(f"[paths:batch] {len(indices)} request(s) for {installation_path}")
            for index in indices:
                request = requests[index]
                try:
                    response = self.resolve_path(request)
                except Exception as e:
                    logger.exception(f"Unexpected failure resolving batch slot {index}")
                    response = self._batch_error(request, e)

                results[index] = response
                if response.is_success:
                    successes += 1
                else:
                    failures += 1
                if response.metadata.was_from_cache:
                    cache_hits += 1

        logger.info(
            f"Batch resolved {len(requests)} request(s): {successes} succeeded, {failures} failed, {cache_hits} cached",
            extra={
                "event": "path_resolution.batch_completed",
                "total": len(requests),
                "groups": len(groups),
                "successes": successes,
                "failures": failures,
                "cache_hits": cache_hits,
            },
        )
        return [r for r in results if r is not None]

    @staticmethod
    def _batch_error(request: PathResolutionRequest, error: Exception) -> PathResolutionResponse:
        metadata = PathResolutionMetadata(
            path_type=request.path_type,
            installation_type=request.installation_type,
            used_strategy="batch",
            fallback_reason="unexpected_error",
        )
        response = PathResolutionResponse.error(
            request.path_type, metadata, errors=[f"Unexpected error: {type(error).__name__}: {error}"]
        )
        return response.with_timing(request.cache_key, 0.0)

    # Introspection

    def supports_path_type(self, path_type: PathType) -> bool:
        return self.registry.has_strategy_for(path_type)

    def get_available_path_types(self, installation_type: InstallationType) -> list[PathType]:
        return [
            path_type
            for path_type in PathType
            if path_type.is_compatible_with(installation_type)
            and self.registry.has_strategy_for(path_type, installation_type)
        ]

    def get_resolution_capabilities(self) -> dict[str, Any]:
        return {
            "supported_path_types": [p.value for p in self.registry.supported_path_types()],
            "supported_installation_types": [t.value for t in InstallationType],
            "available_path_types": {
                t.value: [p.value for p in self.get_available_path_types(t)] for t in InstallationType
            },
            "strategies": self.registry.capabilities(),
            "caching_enabled": self.cache is not None,
            "recovery_techniques": list(DEFAULT_RECOVERY_CHAIN),
        }

    def cache_stats(self) -> CacheStats:
        return self.cache.stats() if self.cache is not None else CacheStats()

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.clear()
            logger.info("Path resolution cache cleared", extra={"event": "path_resolution.cache_cleared"})

