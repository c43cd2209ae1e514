"""Immersive (AR) session command interface."""

from abc import ABC, abstractmethod

import structlog

logger = structlog.get_logger(__name__)


class ImmersiveSession(ABC):
    """Commands invoked as side effects of phase transitions."""

    @property
    @abstractmethod
    def running(self) -> bool:
        pass

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @abstractmethod
    def set_camera_active(self, active: bool) -> None:
        pass


class HeadlessSession(ImmersiveSession):
    """Session stand-in that records the commands it receives."""

    def __init__(self):
        self._running = False
        self.camera_active = False
        self.calls: list[str] = []

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self.calls.append("start")
        self._running = True
        logger.info("Immersive session started")

    def stop(self) -> None:
        self.calls.append("stop")
        self._running = False
        self.camera_active = False
        logger.info("Immersive session stopped")

    def set_camera_active(self, active: bool) -> None:
        self.calls.append(f"camera:{'on' if active else 'off'}")
        self.camera_active = active
