"""
BlockyKids - Action-trace execution & replay engine

Turns a learner's program (visual blocks or Python source) into a
deterministic, bounded sequence of world-mutating actions, replays it
with controlled pacing, and judges the final world against a level goal.

The engine provides:
- Per-domain capability registries (robot, building, sorting, combat,
  music, sprite, pixel, math)
- Block and source program compilers
- Local and remote execution sandboxes
- A cancellable replay scheduler
- Pure goal validators
"""

__version__ = "0.1.0"
