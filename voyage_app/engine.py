"""
Main flow runner.

Wires configuration, the persisted flag store, the event bus, the frame
scheduler and the collaborators into a FlowGraph for one experience, and
drives it one frame at a time:

Signals → Phase exit resolution → Exit choreography → Next phase
"""

import dataclasses
import math
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from .collaborators.view import ViewRegistry
from .config.defaults import PersistenceParams, SceneColors, TimingParams
from .config.loader import ConfigLoader
from .config.validation import ConfigValidator
from .errors import ConfigurationError
from .flow.graph import FlowGraph, FlowGraphBuilder
from .flow.models import Collaborators, ExitCallback, FlowContext, ProcessContext, Query
from .flow.node import PhaseNode
from .flow.scheduler import FrameScheduler
from .persistence.flag_store import FlagCache, InMemoryFlagStore, PersistedFlagStore, SqliteFlagStore
from .phases import PHASE_KINDS
from .signals.bus import EventBus

logger = structlog.get_logger(__name__)


class FlowRunner:
    """
    Coordinator for one experience.

    A ProcessContext may be shared between runners to model several
    experiences played within one application process.
    """

    def __init__(
        self,
        experience: str,
        config_dir: Optional[Union[str, Path]] = None,
        overrides: Optional[dict[str, Any]] = None,
        store: Optional[PersistedFlagStore] = None,
        collaborators: Optional[Collaborators] = None,
        process: Optional[ProcessContext] = None,
        queries: Optional[dict[str, Query]] = None,
        on_experience_exit: Optional[ExitCallback] = None,
    ) -> None:
        self.logger = logger.bind(experience=experience)
        self.experience = experience

        self.config_loader = ConfigLoader.create(Path(config_dir) if config_dir is not None else None)
        self.definition = self.config_loader.load_experience(experience)
        self.settings = self.config_loader.merge_config(experience, overrides)
        self._validate()

        self.timing = self._build_params(TimingParams, "timing")
        self.persistence = self._build_params(PersistenceParams, "persistence")
        self.colors = self._build_params(SceneColors, "colors")

        self.store = store if store is not None else self._create_store()
        self.flags = FlagCache(self.store)
        self.bus = EventBus()
        self.scheduler = FrameScheduler(self.timing.frame_interval)
        self.process = process if process is not None else ProcessContext()

        if collaborators is None:
            collaborators = Collaborators.headless(
                self.scheduler,
                views=ViewRegistry.from_definitions(self.definition.get("views")),
                queries=queries,
            )
        elif queries:
            collaborators = dataclasses.replace(collaborators, queries={**collaborators.queries, **queries})
        self.collaborators = collaborators

        self.context = FlowContext(
            scheduler=self.scheduler,
            bus=self.bus,
            flags=self.flags,
            process=self.process,
            collaborators=self.collaborators,
            timing=self.timing,
            colors=self.colors,
            on_experience_exit=on_experience_exit,
        )
        self.graph: FlowGraph = FlowGraphBuilder(PHASE_KINDS).build(self.definition, self.context)

        self.logger.info(
            "Flow runner initialized",
            phases=len(self.graph.nodes),
            backend=type(self.store).__name__
        )

    def _validate(self) -> None:
        errors = ConfigValidator.validate_config(self.settings)
        errors.extend(ConfigValidator.validate_experience(self.definition, known_kinds=PHASE_KINDS))

        if errors:
            for error in errors:
                self.logger.error("Invalid configuration", field=error.field, message=error.message, value=error.value)
            raise ConfigurationError(
                f"Experience {self.experience} failed validation with {len(errors)} error(s)",
                context={"errors": [f"{error.field}: {error.message}" for error in errors]}
            )

    def _build_params(self, params_class: type, section: str) -> Any:
        values = self.settings.get(section) or {}
        known = params_class.__dataclass_fields__
        return params_class(**{key: value for key, value in values.items() if key in known})

    def _create_store(self) -> PersistedFlagStore:
        if self.persistence.backend == "memory":
            return InMemoryFlagStore()
        return SqliteFlagStore(self.persistence.db_path)

    # ------------------------------------------------------------------
    # Driving the flow
    # ------------------------------------------------------------------

    def start(self) -> PhaseNode:
        return self.graph.start()

    def run_frame(self, dt: Optional[float] = None) -> None:
        """Advance the clock one frame, then let the active phase evaluate its exit."""
        self.scheduler.advance(dt)
        self.graph.tick()

    def advance(self, seconds: float) -> int:
        """Run whole frames covering seconds of frame time."""
        frames = max(1, math.ceil(seconds / self.timing.frame_interval - 1e-9))
        for _ in range(frames):
            self.run_frame()
        return frames

    def publish(self, signal: str, payload: Any = None) -> int:
        return self.bus.publish(signal, payload)

    def reset_progress(self) -> None:
        """Forget every persisted flag."""
        self.flags.clear_all()
        self.logger.info("Progress reset")

    def stop(self) -> None:
        self.graph.stop()

    @property
    def active_phase(self) -> Optional[PhaseNode]:
        return self.graph.active

    @property
    def active_id(self) -> Optional[str]:
        return self.graph.active.identity if self.graph.active is not None else None

    @property
    def finished(self) -> bool:
        return self.graph.finished
