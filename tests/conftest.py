"""Pytest configuration and shared fixtures."""

import math
from typing import Any, Optional

import pytest

from voyage_app.collaborators.view import ViewRegistry
from voyage_app.config.defaults import TimingParams
from voyage_app.flow.graph import FlowGraph, FlowGraphBuilder
from voyage_app.flow.models import Collaborators, FlowContext, ProcessContext
from voyage_app.flow.scheduler import FrameScheduler
from voyage_app.persistence.flag_store import FlagCache, InMemoryFlagStore
from voyage_app.phases import PHASE_KINDS
from voyage_app.signals.bus import EventBus


# Round numbers keep frame arithmetic readable in assertions
TEST_TIMING = TimingParams(
    frame_interval=0.1,
    gui_fade_duration=0.2,
    initial_delay=0.3,
    scene_fade_duration=0.2,
    destabilized_fade_duration=0.2,
    scene_check_delay=1.0,
)


@pytest.fixture
def view_definitions() -> dict[str, Any]:
    """Views used across phase tests."""
    return {
        "privacy_gui": {"controls": ["continue", "accept"]},
        "terms_gui": {"controls": ["continue", "accept"]},
        "warning_gui": {"controls": ["ok"]},
        "message_gui": {"controls": ["continue", "back"]},
        "after_gui": {"controls": ["continue"]},
        "content_gui": {"controls": ["continue", "back"]},
        "destabilized_gui": {
            "controls": ["continue"],
            "variants": {"body": ["return_to_localization", "return_to_street_map"]},
        },
    }


@pytest.fixture
def scheduler() -> FrameScheduler:
    return FrameScheduler(TEST_TIMING.frame_interval)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store() -> InMemoryFlagStore:
    return InMemoryFlagStore()


@pytest.fixture
def process() -> ProcessContext:
    return ProcessContext()


@pytest.fixture
def views(view_definitions) -> ViewRegistry:
    return ViewRegistry.from_definitions(view_definitions)


@pytest.fixture
def queries() -> dict:
    return {}


@pytest.fixture
def collaborators(scheduler, views, queries) -> Collaborators:
    return Collaborators.headless(scheduler, views=views, queries=queries)


@pytest.fixture
def exits() -> list:
    """Records (phase, outcome) for every experience exit."""
    return []


@pytest.fixture
def context(scheduler, bus, store, process, collaborators, exits) -> FlowContext:
    return FlowContext(
        scheduler=scheduler,
        bus=bus,
        flags=FlagCache(store),
        process=process,
        collaborators=collaborators,
        timing=TEST_TIMING,
        on_experience_exit=lambda phase, outcome: exits.append((phase.identity, outcome)),
    )


class FlowHarness:
    """Builds graphs against one FlowContext and drives them frame by frame."""

    def __init__(self, context: FlowContext):
        self.context = context
        self.graph: Optional[FlowGraph] = None

    def build(self, nodes: list[dict[str, Any]], start: Optional[str] = None, name: str = "test") -> FlowGraph:
        definition = {"name": name, "start": start or nodes[0]["id"], "nodes": nodes}
        self.graph = FlowGraphBuilder(PHASE_KINDS).build(definition, self.context)
        return self.graph

    def start(self, nodes: list[dict[str, Any]], start: Optional[str] = None) -> FlowGraph:
        graph = self.build(nodes, start)
        graph.start()
        return graph

    def frames(self, count: int = 1) -> None:
        for _ in range(count):
            self.context.scheduler.advance()
            self.graph.tick()

    def settle(self, seconds: float = 1.0) -> None:
        self.frames(math.ceil(seconds / self.context.scheduler.frame_interval - 1e-9))

    def publish(self, signal: str, payload: Any = None) -> int:
        return self.context.bus.publish(signal, payload)

    @property
    def active(self) -> Optional[str]:
        return self.graph.active.identity if self.graph.active is not None else None

    def view(self, name: str):
        return self.context.collaborators.views[name]


@pytest.fixture
def harness(context) -> FlowHarness:
    return FlowHarness(context)


@pytest.fixture
def legal_flow() -> list[dict[str, Any]]:
    """Two legal documents followed by an instructions screen."""
    return [
        {"id": "privacy", "kind": "legal_doc", "pref_name": "privacy_v1", "view": "privacy_gui",
         "successors": {"next": "terms"}},
        {"id": "terms", "kind": "legal_doc", "pref_name": "terms_v1", "preceding": ["privacy"],
         "view": "terms_gui", "successors": {"next": "instructions"}},
        {"id": "instructions", "kind": "message", "view": "message_gui", "successors": {"next": "done"}},
        {"id": "done", "kind": "terminal", "outcome": "loaded"},
    ]
