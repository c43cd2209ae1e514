"""Phase GUI interface and a headless, state-recording implementation."""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional


class PhaseView(ABC):
    """The GUI owned by one phase: visibility, controls and text variants."""

    def __init__(self, name: str):
        self.name = name

    @property
    @abstractmethod
    def visible(self) -> bool:
        """Whether the GUI is currently shown."""

    @abstractmethod
    def set_visible(self, visible: bool) -> None:
        pass

    @abstractmethod
    def set_alpha(self, alpha: float) -> None:
        pass

    @abstractmethod
    def has_control(self, control: str) -> bool:
        pass

    @abstractmethod
    def set_control_enabled(self, control: str, enabled: bool) -> None:
        pass

    @abstractmethod
    def is_control_enabled(self, control: str) -> bool:
        pass

    @abstractmethod
    def is_checked(self, control: str) -> bool:
        pass

    @abstractmethod
    def set_checked(self, control: str, checked: bool) -> None:
        pass

    @abstractmethod
    def has_variant(self, group: str, variant: str) -> bool:
        pass

    @abstractmethod
    def show_variant(self, group: str, variant: str) -> None:
        """Show one variant of a group (e.g. body text), hiding its siblings."""

    @abstractmethod
    def active_variant(self, group: str) -> Optional[str]:
        pass


class HeadlessView(PhaseView):
    """In-memory PhaseView that records state instead of rendering."""

    def __init__(
        self,
        name: str,
        controls: Optional[Iterable[str]] = None,
        variants: Optional[dict[str, Iterable[str]]] = None
    ):
        super().__init__(name)
        self._visible = False
        self.alpha = 0.0
        self.controls: dict[str, bool] = {control: True for control in (controls or ())}
        self.checked: dict[str, bool] = {}
        self.variants: dict[str, list[str]] = {
            group: list(options) for group, options in (variants or {}).items()
        }
        self.active: dict[str, str] = {}
        self.visibility_changes = 0

    @property
    def visible(self) -> bool:
        return self._visible

    def set_visible(self, visible: bool) -> None:
        if visible != self._visible:
            self.visibility_changes += 1
        self._visible = visible
        if not visible:
            self.alpha = 0.0

    def set_alpha(self, alpha: float) -> None:
        self.alpha = min(max(alpha, 0.0), 1.0)

    def has_control(self, control: str) -> bool:
        return control in self.controls

    def set_control_enabled(self, control: str, enabled: bool) -> None:
        self.controls[control] = enabled

    def is_control_enabled(self, control: str) -> bool:
        return self.controls.get(control, False)

    def is_checked(self, control: str) -> bool:
        return self.checked.get(control, False)

    def set_checked(self, control: str, checked: bool) -> None:
        self.checked[control] = checked

    def has_variant(self, group: str, variant: str) -> bool:
        return variant in self.variants.get(group, ())

    def show_variant(self, group: str, variant: str) -> None:
        self.active[group] = variant

    def active_variant(self, group: str) -> Optional[str]:
        return self.active.get(group)

    def __repr__(self) -> str:
        return f"HeadlessView({self.name!r}, visible={self._visible})"


class ViewRegistry:
    """Lookup of phase views by name."""

    def __init__(self, views: Optional[Iterable[PhaseView]] = None):
        self._views: dict[str, PhaseView] = {}
        for view in views or ():
            self.register(view)

    @classmethod
    def from_definitions(cls, definitions: Optional[dict[str, Any]]) -> "ViewRegistry":
        """Build headless views from the `views` section of an experience file."""
        registry = cls()
        for name, entry in (definitions or {}).items():
            entry = entry or {}
            registry.register(HeadlessView(
                name,
                controls=entry.get("controls"),
                variants=entry.get("variants"),
            ))
        return registry

    def register(self, view: PhaseView) -> None:
        self._views[view.name] = view

    def get(self, name: str) -> Optional[PhaseView]:
        return self._views.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._views

    def __getitem__(self, name: str) -> PhaseView:
        return self._views[name]

    def names(self) -> list[str]:
        return sorted(self._views)
