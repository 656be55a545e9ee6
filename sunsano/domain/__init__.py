"""Domain rules: state machines and pricing."""
