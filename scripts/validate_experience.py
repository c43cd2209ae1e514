#!/usr/bin/env python3
"""Experience validation script."""

import sys
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from voyage_app.config.loader import ConfigLoader
from voyage_app.config.validation import ConfigValidator, ValidationError
from voyage_app.errors import ConfigurationError
from voyage_app.phases import PHASE_KINDS


def validate_experience(loader: ConfigLoader, experience: str) -> List[ValidationError]:
    """Validate the phase graph and merged settings of one experience."""
    definition = loader.load_experience(experience)
    errors = ConfigValidator.validate_experience(definition, known_kinds=PHASE_KINDS)
    errors.extend(ConfigValidator.validate_config(loader.merge_config(experience)))

    views = definition.get("views", {})
    for node in definition.get("nodes", []):
        view = node.get("view") if isinstance(node, dict) else None
        if view is not None and view not in views:
            errors.append(ValidationError(
                field=f"{node.get('id')}.view",
                message="View is not declared in the views section",
                value=view
            ))
    return errors


def main():
    """Main validation function."""
    print("🔍 Validating experiences...")

    loader = ConfigLoader.create(Path(sys.argv[1]) if len(sys.argv) > 1 else None)
    experiences = loader.list_experiences()

    if not experiences:
        print(f"❌ No experiences found in {loader.config_dir}")
        sys.exit(1)

    all_valid = True

    for experience in experiences:
        print(f"\n🧭 Validating {experience}...")

        try:
            errors = validate_experience(loader, experience)
        except ConfigurationError as e:
            print(f"❌ Could not load {experience}: {e}")
            all_valid = False
            continue

        if errors:
            print(f"❌ Found {len(errors)} validation errors:")
            for error in errors:
                print(f"  • {error.field}: {error.message} (value: {error.value})")
            all_valid = False
        else:
            print(f"✅ {experience} is valid")

    print(f"\n📋 Testing per-run overrides...")
    config = loader.merge_config(experiences[0], {"timing": {"gui_fade_duration": 0.0}})
    errors = ConfigValidator.validate_config(config)
    if errors:
        print(f"❌ Override validation failed:")
        for error in errors:
            print(f"  • {error.field}: {error.message}")
        all_valid = False
    else:
        print(f"✅ Override validation passed")

    if all_valid:
        print(f"\n🎉 All experiences passed validation!")
        sys.exit(0)
    else:
        print(f"\n❌ Experience validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
