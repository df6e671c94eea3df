"""Core components: document model, scanner, observer, state and feed polling."""
