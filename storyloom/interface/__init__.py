"""Terminal interface: config, rendering and the play loop."""
