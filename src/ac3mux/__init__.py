"""ac3mux - re-encode media audio tracks to AC3 with language-aware track selection."""

__version__ = "0.1.0"
