"""Data protection jobs for the event log."""
