"""Board model: grids, fleet placement and shot resolution."""
