"""Records and commands exposed by the offline sync layer."""
from .offline_operation import OfflineOperation, OperationStatus, OperationType
from .operation_row import OfflineOperationRow

__all__ = ["OfflineOperation", "OfflineOperationRow", "OperationStatus", "OperationType"]
