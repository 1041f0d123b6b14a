"""Terminal and queued I/O contexts, command parsing and response streaming."""
