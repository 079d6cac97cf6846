"""Domain Events.

Represents significant occurrences while invoking remote services.
"""
