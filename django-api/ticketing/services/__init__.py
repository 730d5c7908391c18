from ticketing.services.allocation_service import AllocationService
from ticketing.services.assignment_service import AssignmentService
from ticketing.services.inventory_service import InventoryService
from ticketing.services.lifecycle_service import LifecycleService
from ticketing.services.range_service import RangeService
from ticketing.services.reconciliation_service import ReconciliationService

__all__ = [
    "AllocationService",
    "AssignmentService",
    "InventoryService",
    "LifecycleService",
    "RangeService",
    "ReconciliationService",
]
