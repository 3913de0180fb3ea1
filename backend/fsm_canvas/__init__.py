"""
FSM Canvas — visual editing core for state-machine workflows.

Keeps a workflow's semantic configuration (states + ordered transition
lists) synchronized with its independently edited canvas layout, and
provides automatic layout and undo/redo history on top of it.

Packages:
    config/    — dataclass configs with environment overrides
    workflow/  — data models, transition identity, sync, editing,
                 auto-layout, history, persistence
"""

__version__ = "0.1.0"
