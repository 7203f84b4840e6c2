"""Core chain-reaction rules (grid model and explosion simulation).

Kept free of FastAPI and redis concerns so the API layer and tests share one rule set.
"""
