"""Pure domain rules (validation) independent of persistence."""
