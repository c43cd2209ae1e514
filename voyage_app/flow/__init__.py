"""
Phase flow module.

Owns the flow graph of phases, their activation lifecycle
(INACTIVE → ENTERING → RUNNING → EXITING → INACTIVE), branch resolution,
and the ordered exit choreography between phases.
"""
