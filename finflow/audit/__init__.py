"""Activity logging package."""

from finflow.audit.history import ActivityLogRepository
from finflow.audit.logger import ActivityLogger

__all__ = ["ActivityLogRepository", "ActivityLogger"]
