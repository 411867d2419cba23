"""Turn protocol adapter, payload codec and durable persistence."""
