"""Output layer: render outcomes, snapshots, and events for the CLI."""
