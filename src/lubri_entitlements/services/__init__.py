"""Application services built on the domain layer and the store/catalog ports."""

from .entitlement_service import EntitlementService
from .lifecycle_service import BatchAction, BatchResult, LifecycleManager, SweepReport
from .reporting_service import GlobalStats, ReportingService, SubscriptionOverview
from .usage_service import UsageCounterUpdater

__all__ = [
    "EntitlementService",
    "LifecycleManager",
    "BatchAction",
    "BatchResult",
    "SweepReport",
    "ReportingService",
    "SubscriptionOverview",
    "GlobalStats",
    "UsageCounterUpdater",
]
