"""DuPont Terminal.

Verified DuPont decomposition, reporting-narrative measures and scenario
forecasts for FTSE 100 constituents, generated by a LangChain chat model and
served through a tiered cache.
"""

__version__ = "0.1.0"

from dupont_terminal.services import (
    BatchPreCacheController,
    ExportCollector,
    LLMFactProvider,
    TieredCacheResolver,
)

__all__ = [
    "BatchPreCacheController",
    "ExportCollector",
    "LLMFactProvider",
    "TieredCacheResolver",
]
