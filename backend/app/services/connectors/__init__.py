from __future__ import annotations

from typing import Dict, Type
import logging

from .base import AcquisitionResult, AcquisitionStrategy
from .openai_web import OpenAIWebSearchStrategy
from .browser_search import BrowserSearchStrategy
from ...core.config import get_settings

logger = logging.getLogger(__name__)

# Strategies are interchangeable; the active one is chosen by ACQUISITION_STRATEGY.
STRATEGIES: Dict[str, Type[AcquisitionStrategy]] = {
    OpenAIWebSearchStrategy.name: OpenAIWebSearchStrategy,
    BrowserSearchStrategy.name: BrowserSearchStrategy,
}


def get_acquisition_strategy(name: str | None = None) -> AcquisitionStrategy:
    """
    Instantiate the named strategy, defaulting to the configured one.
    """
    strategy_name = (name or get_settings().ACQUISITION_STRATEGY).strip().lower()
    strategy_cls = STRATEGIES.get(strategy_name)
    if strategy_cls is None:
        raise ValueError(
            f"Unknown acquisition strategy '{strategy_name}'. "
            f"Expected one of: {', '.join(sorted(STRATEGIES))}"
        )
    logger.debug("Using acquisition strategy '%s'", strategy_name, extra={"strategy": strategy_name})
    return strategy_cls()


__all__ = [
    "AcquisitionResult",
    "AcquisitionStrategy",
    "BrowserSearchStrategy",
    "OpenAIWebSearchStrategy",
    "STRATEGIES",
    "get_acquisition_strategy",
]
