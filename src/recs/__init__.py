"""Recommendation domain: models, safety filter, diversity, orchestration."""
