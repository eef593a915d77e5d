"""GitHub issue reporting."""
