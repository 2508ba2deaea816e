"""Intake orchestrator that runs the per-lead pipeline over many captures."""
from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Union

from ..badges import RuleConfig
from ..config import ConfigurationError
from ..events import EventBus
from ..models import LeadCapture, LeadSummary
from ..pipeline import summarize_lead

LOGGER = logging.getLogger(__name__)


class IntakeOrchestrator:
    """Summarizes harvested leads and reports progress on an :class:`EventBus`."""

    def __init__(
        self,
        *,
        badge_config: Union[RuleConfig, Mapping[str, Any], None] = None,
        concurrent: bool = False,
        max_workers: Optional[int] = None,
        bus: Optional[EventBus] = None,
        today: Optional[date] = None,
    ) -> None:
        self._badge_config = self._resolve_badge_config(badge_config)
        self._concurrent = concurrent
        self._max_workers = max_workers
        self._bus = bus
        self._today = today

    @staticmethod
    def _resolve_badge_config(
        badge_config: Union[RuleConfig, Mapping[str, Any], None],
    ) -> Optional[RuleConfig]:
        if badge_config is None or isinstance(badge_config, RuleConfig):
            return badge_config
        try:
            return RuleConfig.from_mapping(badge_config)
        except ConfigurationError as exc:
            LOGGER.warning("Invalid badge configuration, using default thresholds: %s", exc)
            return None

    @property
    def badge_config(self) -> Optional[RuleConfig]:
        return self._badge_config

    def summarize(self, captures: Iterable[LeadCapture], job_id: Optional[str] = None) -> List[LeadSummary]:
        """Summarize every capture, returning results in input order."""

        job_id = job_id or uuid.uuid4().hex
        captures = list(captures)
        total = len(captures)
        started = time.monotonic()
        self._publish(job_id, "start", total=total)

        if not self._concurrent or total <= 1:
            summaries = []
            for index, capture in enumerate(captures, start=1):
                summary = self._summarize_one(capture)
                summaries.append(summary)
                self._report(job_id, index, total, summary)
        else:
            slots: List[Optional[LeadSummary]] = [None] * total
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                futures = {
                    executor.submit(self._summarize_one, capture): position
                    for position, capture in enumerate(captures)
                }
                # Progress follows completion order; results keep input order.
                for index, future in enumerate(as_completed(futures), start=1):
                    summary = future.result()
                    slots[futures[future]] = summary
                    self._report(job_id, index, total, summary)
            summaries = [summary for summary in slots if summary is not None]

        elapsed_ms = int((time.monotonic() - started) * 1000)
        self._publish(job_id, "done", processed=len(summaries), ms=elapsed_ms)
        LOGGER.info("Summarized %s leads in %s ms", len(summaries), elapsed_ms)
        return summaries

    def _summarize_one(self, capture: LeadCapture) -> LeadSummary:
        LOGGER.debug("Summarizing lead %s", capture.display_name())
        return summarize_lead(capture, badge_config=self._badge_config, today=self._today)

    def _report(self, job_id: str, index: int, total: int, summary: LeadSummary) -> None:
        self._publish(
            job_id,
            "lead",
            index=index,
            total=total,
            name=summary.primary_name,
            badge=summary.badge.value,
            premium=str(summary.monthly_premium_total),
        )

    def _publish(self, job_id: str, type: str, **payload: Any) -> None:
        if self._bus is not None:
            self._bus.publish(job_id, type, **payload)
