"""
Voyage App - Guided Experience Flow Engine

Drives a guided, multi-screen experience (legal acceptance, safety warning,
instructions, live localization, success/failure branches) as a statically
wired graph of phases with asynchronous enter/exit choreography, persisted
one-time gating and signal-driven branching.
"""

__version__ = "0.1.0"
__author__ = "Voyage Team"
