"""Turn/move processing helpers.

Move validation, turn order, and win detection live here so move handling and
timeout handling apply the same rules.
"""
