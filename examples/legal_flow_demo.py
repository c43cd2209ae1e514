#!/usr/bin/env python3
"""
Legal Flow Demo

Runs the loading experience headlessly twice against the same flag
database, the way two launches of the app would:

- First launch: privacy policy and terms are shown and accepted
- Second launch: both documents are skipped, and a new process shows the
  safety warning once more

Run: python examples/legal_flow_demo.py
"""

import sys
import tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from voyage_app.engine import FlowRunner
from voyage_app.logging import configure_logging
from voyage_app.signals import Signals


def launch(db_path: str, accept: bool) -> FlowRunner:
    """Play the loading experience once with a fresh process."""
    runner = FlowRunner(
        "loading",
        overrides={"persistence": {"backend": "sqlite", "db_path": db_path}},
        on_experience_exit=lambda phase, outcome: print(f"  🏁 Experience finished: {outcome}"),
    )
    runner.start()
    runner.advance(2.0)

    if accept:
        for _ in range(2):
            print(f"  📄 Showing {runner.active_id}")
            runner.publish(Signals.ACCEPT_CHECKBOX, True)
            runner.advance(0.1)
            runner.publish(Signals.CONTINUE)
            runner.advance(2.0)

    print(f"  ⚠️  Showing {runner.active_id}")
    runner.publish(Signals.WARNING_OK)
    runner.advance(2.0)

    print(f"  📖 Showing {runner.active_id}")
    runner.publish(Signals.CONTINUE)
    runner.advance(2.0)
    return runner


def main():
    configure_logging(level="WARNING")

    with tempfile.TemporaryDirectory() as temp_dir:
        db_path = str(Path(temp_dir) / "flags.db")

        print("🚀 First launch")
        first = launch(db_path, accept=True)
        print(f"  Path: {' → '.join(first.graph.path())}")

        print("\n🔁 Second launch")
        second = launch(db_path, accept=False)
        print(f"  Path: {' → '.join(second.graph.path())}")
        skipped = [record.from_phase for record in second.graph.history if record.skipped]
        print(f"  Skipped: {', '.join(skipped)}")


if __name__ == "__main__":
    main()
