"""
Service Layer - IndexingService, classification scheduling, driver selection and invocation.
"""

from tagscope.services.drivers import (
    CSCOPE,
    CTAGS,
    DEFAULT_DRIVERS,
    GTAGS,
    DatabaseKind,
    Driver,
    DriverRegistry,
)
from tagscope.services.indexing_models import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_DRIVER_FAILURE,
    EXIT_OK,
    DriverResult,
    IndexJob,
    RunResult,
)
from tagscope.services.indexing_service import IndexingService
from tagscope.services.invoker import Invoker
from tagscope.services.output_layout import OutputLayout
from tagscope.services.scheduler import ClassificationScheduler, default_worker_count

__all__ = [
    # Services
    "IndexingService",
    "ClassificationScheduler",
    "default_worker_count",
    "Invoker",
    "OutputLayout",
    # Drivers
    "Driver",
    "DriverRegistry",
    "DatabaseKind",
    "CTAGS",
    "CSCOPE",
    "GTAGS",
    "DEFAULT_DRIVERS",
    # Models
    "IndexJob",
    "DriverResult",
    "RunResult",
    "EXIT_OK",
    "EXIT_DRIVER_FAILURE",
    "EXIT_CONFIGURATION_ERROR",
]
