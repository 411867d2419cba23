"""Single-player opponent logic."""
