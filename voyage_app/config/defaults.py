"""Default configuration parameters for the phase flow engine."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TimingParams:
    """Frame and choreography timing, in seconds."""
    frame_interval: float = 1.0 / 60.0             # One scheduler pass per rendered frame
    gui_fade_duration: float = 0.5                  # Phase GUI fade in/out
    initial_delay: float = 0.75                     # Delay before the first visible screen
    scene_fade_duration: float = 0.5                # Full-screen overlay fade
    destabilized_fade_duration: float = 0.75        # GUI fade for destabilization warning
    scene_check_delay: float = 2.0                  # Delay before re-checking overlay fade-in


@dataclass(frozen=True)
class PersistenceParams:
    """Persisted flag store parameters."""
    backend: str = "sqlite"                         # sqlite | memory
    db_path: str = "flags.db"


@dataclass(frozen=True)
class SceneColors:
    """Overlay colours used when fading the scene between phases."""
    leave_ar: str = "white"                         # Leaving the immersive session
    stay_ar: str = "black"                          # Moving between immersive phases


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    timing: TimingParams
    persistence: PersistenceParams
    colors: SceneColors


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        timing=TimingParams(),
        persistence=PersistenceParams(),
        colors=SceneColors(),
    )
