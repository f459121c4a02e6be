"""Edge building, pre-checks and revision access."""
