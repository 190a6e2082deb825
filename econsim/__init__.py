"""econsim source package.

Tick-based multi-agent economic simulation core:
- config: Configuration loading and management
- world: World state, actions, effects and the transaction executor
- simulation: Scheduler, worker pool, checkpoints and replay
"""
