"""API Resilience Implementations.

Contains the resilient invoker (retry with exponential backoff, credential
rotation, fallback values) and the pluggable error classifier.
Bounded Context: API Resilience
"""
