"""Core (models, transfer session, job slot, controller)"""
from .models import Document, SyncAction, SyncPlan, ProgressState
from .session import TransferSession, probe
from .jobs import JobSlot

__all__ = ["Document", "SyncAction", "SyncPlan", "ProgressState",
           "TransferSession", "probe", "JobSlot"]
