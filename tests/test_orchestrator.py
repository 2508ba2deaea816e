from __future__ import annotations

import threading
from datetime import date

import pytest

from lead_intake.badges import RuleConfig
from lead_intake.events import EventBus
from lead_intake.models import Badge, LeadCapture
from lead_intake.orchestrator import IntakeOrchestrator

TODAY = date(2024, 1, 10)


def _captures() -> list:
    return [
        LeadCapture(
            primary_name=f"Lead {index}",
            primary_tokens=[f"614-555-{1000 + index}"],
            policy_blocks=[f"Stage: Issued Special {index * 30} Mode Monthly Policy Paid To 01/01/2024"],
        )
        for index in range(1, 6)
    ]


@pytest.mark.parametrize("concurrent", [False, True])
def test_summaries_keep_input_order(concurrent: bool) -> None:
    orchestrator = IntakeOrchestrator(concurrent=concurrent, max_workers=3, today=TODAY)

    summaries = orchestrator.summarize(_captures(), job_id="job")

    assert [summary.primary_name for summary in summaries] == [f"Lead {i}" for i in range(1, 6)]
    assert [summary.badge for summary in summaries] == [
        Badge.PURPLE,
        Badge.WHITE,
        Badge.WHITE,
        Badge.STAR,
        Badge.STAR,
    ]


def test_progress_events_are_published_for_the_job() -> None:
    bus = EventBus()
    events: list = []
    bus.subscribe("job-42", events.append)
    orchestrator = IntakeOrchestrator(bus=bus, today=TODAY)

    orchestrator.summarize(_captures()[:2], job_id="job-42")

    assert [event.type for event in events] == ["start", "lead", "lead", "done"]
    assert events[0].payload == {"total": 2}
    assert events[1].payload["index"] == 1
    assert events[1].payload["name"] == "Lead 1"
    assert events[1].payload["badge"] == "purple"
    assert events[1].payload["premium"] == "30.00"
    assert events[-1].payload["processed"] == 2


def test_mapping_config_is_validated_once() -> None:
    orchestrator = IntakeOrchestrator(badge_config={"star": {"floor": 0}}, today=TODAY)

    assert isinstance(orchestrator.badge_config, RuleConfig)
    summaries = orchestrator.summarize(_captures()[:1])
    assert summaries[0].badge is Badge.STAR


def test_invalid_mapping_config_falls_back_to_defaults() -> None:
    orchestrator = IntakeOrchestrator(badge_config={"gold": {"floor": 0}}, today=TODAY)

    assert orchestrator.badge_config is None
    assert orchestrator.summarize(_captures()[:1])[0].badge is Badge.PURPLE


def test_empty_input_still_reports_completion() -> None:
    bus = EventBus()
    events: list = []
    bus.subscribe_all(events.append)

    assert IntakeOrchestrator(bus=bus).summarize([], job_id="empty") == []
    assert [event.type for event in events] == ["start", "done"]


class _SlowFirstLead(IntakeOrchestrator):
    """Holds ``Lead 1`` back until another lead's progress event has been seen."""

    def __init__(self, released: threading.Event, **kwargs) -> None:
        super().__init__(**kwargs)
        self.released = released
        self.waited_for_progress = None

    def _summarize_one(self, capture: LeadCapture):
        if capture.primary_name == "Lead 1":
            self.waited_for_progress = self.released.wait(timeout=5)
        return super()._summarize_one(capture)


def test_concurrent_progress_is_published_as_leads_finish() -> None:
    bus = EventBus()
    events: list = []
    released = threading.Event()

    def on_event(event) -> None:
        events.append(event)
        if event.type == "lead":
            released.set()

    bus.subscribe("job-7", on_event)
    orchestrator = _SlowFirstLead(released, bus=bus, concurrent=True, max_workers=3, today=TODAY)

    summaries = orchestrator.summarize(_captures(), job_id="job-7")

    assert orchestrator.waited_for_progress is True
    lead_events = [event for event in events if event.type == "lead"]
    assert lead_events[0].payload["name"] != "Lead 1"
    assert [event.payload["index"] for event in lead_events] == [1, 2, 3, 4, 5]
    assert {event.payload["name"] for event in lead_events} == {f"Lead {i}" for i in range(1, 6)}
    assert [summary.primary_name for summary in summaries] == [f"Lead {i}" for i in range(1, 6)]
    assert events[-1].type == "done"
