"""Game orchestration, phase rules and host-facing ports."""
