"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any, Iterable, Optional


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


class ConfigValidator:
    """Validates settings and experience definitions without raising."""

    TIMING_FIELDS = (
        "frame_interval",
        "gui_fade_duration",
        "initial_delay",
        "scene_fade_duration",
        "destabilized_fade_duration",
        "scene_check_delay",
    )

    PERSISTENCE_FIELDS = ("backend", "db_path")

    PERSISTENCE_BACKENDS = ("sqlite", "memory")

    COLOR_FIELDS = ("leave_ar", "stay_ar")

    @staticmethod
    def validate_timing_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate timing parameters."""
        errors = []

        for field in params:
            if field not in ConfigValidator.TIMING_FIELDS:
                errors.append(ValidationError(
                    field=f"timing.{field}",
                    message="Unknown timing parameter",
                    value=params[field]
                ))

        for field in ConfigValidator.TIMING_FIELDS:
            if field not in params:
                continue
            value = params[field]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                errors.append(ValidationError(
                    field=f"timing.{field}",
                    message="Must be a non-negative number of seconds",
                    value=value
                ))

        # A zero frame interval would never advance the clock
        if "frame_interval" in params:
            value = params["frame_interval"]
            if isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0:
                errors.append(ValidationError(
                    field="timing.frame_interval",
                    message="Must be greater than zero",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_persistence_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate persistence parameters."""
        errors = []

        for field in params:
            if field not in ConfigValidator.PERSISTENCE_FIELDS:
                errors.append(ValidationError(
                    field=f"persistence.{field}",
                    message="Unknown persistence parameter",
                    value=params[field]
                ))

        if "backend" in params and params["backend"] not in ConfigValidator.PERSISTENCE_BACKENDS:
            errors.append(ValidationError(
                field="persistence.backend",
                message=f"Must be one of {', '.join(ConfigValidator.PERSISTENCE_BACKENDS)}",
                value=params["backend"]
            ))

        if "db_path" in params:
            value = params["db_path"]
            if not isinstance(value, str) or not value:
                errors.append(ValidationError(
                    field="persistence.db_path",
                    message="Must be a non-empty path string",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_color_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate scene overlay colours."""
        errors = []

        for field, value in params.items():
            if field not in ConfigValidator.COLOR_FIELDS:
                errors.append(ValidationError(
                    field=f"colors.{field}",
                    message="Unknown colour parameter",
                    value=value
                ))
            elif not isinstance(value, str) or not value.strip():
                errors.append(ValidationError(
                    field=f"colors.{field}",
                    message="Must be a non-empty colour name",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_experience(
        definition: dict[str, Any],
        known_kinds: Optional[Iterable[str]] = None
    ) -> list[ValidationError]:
        """Validate the static wiring of an experience definition."""
        errors = []
        kinds = set(known_kinds) if known_kinds is not None else None

        nodes = definition.get("nodes")
        if not isinstance(nodes, list) or not nodes:
            errors.append(ValidationError(
                field="nodes",
                message="Must be a non-empty list of phases",
                value=nodes
            ))
            return errors

        identities: list[str] = []
        for index, node in enumerate(nodes):
            if not isinstance(node, dict):
                errors.append(ValidationError(
                    field=f"nodes[{index}]",
                    message="Must be a mapping",
                    value=node
                ))
                continue

            identity = node.get("id")
            if not isinstance(identity, str) or not identity:
                errors.append(ValidationError(
                    field=f"nodes[{index}].id",
                    message="Must be a non-empty string",
                    value=identity
                ))
                continue

            if identity in identities:
                errors.append(ValidationError(
                    field=f"nodes[{index}].id",
                    message="Duplicate phase id",
                    value=identity
                ))
            identities.append(identity)

            kind = node.get("kind")
            if not isinstance(kind, str) or not kind:
                errors.append(ValidationError(
                    field=f"{identity}.kind",
                    message="Must be a non-empty string",
                    value=kind
                ))
            elif kinds is not None and kind not in kinds:
                errors.append(ValidationError(
                    field=f"{identity}.kind",
                    message="Unknown phase kind",
                    value=kind
                ))

        known = set(identities)

        start = definition.get("start")
        if start not in known:
            errors.append(ValidationError(
                field="start",
                message="Must name a phase defined in nodes",
                value=start
            ))

        for node in nodes:
            if not isinstance(node, dict) or not isinstance(node.get("id"), str):
                continue
            identity = node["id"]
            successors = node.get("successors") or {}
            if not isinstance(successors, dict):
                errors.append(ValidationError(
                    field=f"{identity}.successors",
                    message="Must be a mapping of branch to phase id",
                    value=successors
                ))
                continue

            for branch, target in successors.items():
                if target is None:
                    errors.append(ValidationError(
                        field=f"{identity}.successors.{branch}",
                        message="Successor is not set",
                        value=target
                    ))
                elif target not in known:
                    errors.append(ValidationError(
                        field=f"{identity}.successors.{branch}",
                        message="Successor names an unknown phase",
                        value=target
                    ))
                elif target == identity:
                    errors.append(ValidationError(
                        field=f"{identity}.successors.{branch}",
                        message="Phase cannot be its own successor",
                        value=target
                    ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate a merged settings dictionary."""
        errors = []

        if "timing" in config:
            errors.extend(ConfigValidator.validate_timing_params(config["timing"]))

        if "persistence" in config:
            errors.extend(ConfigValidator.validate_persistence_params(config["persistence"]))

        if "colors" in config:
            errors.extend(ConfigValidator.validate_color_params(config["colors"]))

        return errors
