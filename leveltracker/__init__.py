"""Level tracker: derived level and experience metrics for tracked characters."""
