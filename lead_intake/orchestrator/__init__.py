"""Workflow orchestration for turning harvested captures into lead summaries."""

from .service import IntakeOrchestrator

__all__ = ["IntakeOrchestrator"]
