"""Orchestrator package - coordinates tree sync workflows."""
from .core import UploadOrchestrator
from .pipeline import ItemPipeline
from .tree_collector import TreeCollector

__all__ = ["UploadOrchestrator", "ItemPipeline", "TreeCollector"]
