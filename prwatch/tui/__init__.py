"""TUI package for prwatch."""
