"""API credential management.

Holds the pool of provider API keys and selects the active one.
Bounded Context: Credential Rotation
"""
