"""Turn-resolution core for a two-grid naval combat game."""
