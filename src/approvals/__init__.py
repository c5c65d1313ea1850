"""Approval queue for human sign-off on trades."""

from .approval_processor import ApprovalQueueProcessor
from .models import ApprovalStats

__all__ = ["ApprovalQueueProcessor", "ApprovalStats"]
