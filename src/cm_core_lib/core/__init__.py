"""Core computation: severity scoring, aggregation, live updates, reporting."""
