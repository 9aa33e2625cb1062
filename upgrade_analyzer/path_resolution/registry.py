"""Strategy registry: bookkeeping and selection."""

import logging
from collections import defaultdict
from typing import Any

from .enums import InstallationType
from .enums import PathType
from .exceptions import NoCompatibleStrategyError
from .exceptions import StrategyConflictError
from .models import PathResolutionRequest
from .strategies.base import PathResolutionStrategy

logger = logging.getLogger(__name__)


class PathResolutionStrategyRegistry:
    """Registry of resolution strategies indexed by path type."""

    def __init__(self, strategies: list[PathResolutionStrategy] | None = None):
        self._strategies: dict[str, PathResolutionStrategy] = {}
        self._by_path_type: dict[PathType, list[PathResolutionStrategy]] = defaultdict(list)
        for strategy in strategies or []:
            self.register(strategy)

    def register(self, strategy: PathResolutionStrategy) -> None:
        """Register a strategy.

        Raises:
            StrategyConflictError: A strategy with the same identifier exists
        """
        identifier = strategy.identifier()
        if identifier in self._strategies:
            raise StrategyConflictError(
                f"Strategy '{identifier}' is already registered",
                context={"identifier": identifier},
            )
        self._strategies[identifier] = strategy
        for path_type in sorted(strategy.supported_path_types(), key=lambda p: p.value):
            self._by_path_type[path_type].append(strategy)
        logger.debug(f"[paths:registry] registered {identifier}")

    def get(self, identifier: str) -> PathResolutionStrategy | None:
        return self._strategies.get(identifier)

    def strategies_for(self, path_type: PathType) -> list[PathResolutionStrategy]:
        return list(self._by_path_type.get(path_type, []))

    def select_strategy(self, request: PathResolutionRequest) -> PathResolutionStrategy:
        """Pick the best strategy for a request.

        Candidates are filtered by installation type, ``can_handle`` and
        ``validate_environment``, then ranked by priority (descending) with
        ties broken by identifier (ascending).

        Raises:
            NoCompatibleStrategyError: No strategy for the path type, or none
                survived filtering
        """
        candidates = self.strategies_for(request.path_type)
        if not candidates:
            raise NoCompatibleStrategyError(
                f"No strategy registered for path type: {request.path_type.value}",
                request=request,
                context={"path_type": request.path_type.value},
            )

        compatible = [
            strategy
            for strategy in candidates
            if request.installation_type in strategy.supported_installation_types()
            and strategy.can_handle(request)
            and not strategy.validate_environment()
        ]
        if not compatible:
            raise NoCompatibleStrategyError(
                f"No compatible strategy for {request.path_type.value} "
                f"in {request.installation_type.value} installation",
                request=request,
                context={
                    "path_type": request.path_type.value,
                    "installation_type": request.installation_type.value,
                    "candidates": [s.identifier() for s in candidates],
                },
            )

        ranked = self.rank(compatible, request.path_type, request.installation_type)
        selected = ranked[0]
        logger.debug(
            f"[paths:registry] selected {selected.identifier()} for {request.path_type.value}",
            extra={
                "event": "path_resolution.strategy_ranked",
                "strategy": selected.identifier(),
                "path_type": request.path_type.value,
                "candidates": [s.identifier() for s in ranked],
            },
        )
        return selected

    @staticmethod
    def rank(
        strategies: list[PathResolutionStrategy], path_type: PathType, installation_type: InstallationType
    ) -> list[PathResolutionStrategy]:
        """Sort by priority descending, then identifier ascending."""
        return sorted(strategies, key=lambda s: (-int(s.priority(path_type, installation_type)), s.identifier()))

    def has_strategy_for(self, path_type: PathType, installation_type: InstallationType | None = None) -> bool:
        for strategy in self.strategies_for(path_type):
            if installation_type is None or installation_type in strategy.supported_installation_types():
                return True
        return False

    def supported_path_types(self) -> list[PathType]:
        return [path_type for path_type in PathType if self._by_path_type.get(path_type)]

    def capabilities(self) -> dict[str, Any]:
        """Describe registered strategies per path type."""
        return {
            "strategies": sorted(self._strategies),
            "path_types": {
                path_type.value: [
                    {
                        "identifier": strategy.identifier(),
                        "installation_types": sorted(t.value for t in strategy.supported_installation_types()),
                        "priorities": {
                            t.value: int(strategy.priority(path_type, t))
                            for t in InstallationType
                            if t in strategy.supported_installation_types()
                        },
                    }
                    for strategy in self._by_path_type.get(path_type, [])
                ]
                for path_type in PathType
            },
        }

    def __len__(self) -> int:
        return len(self._strategies)
