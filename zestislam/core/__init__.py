"""Core Application Layer: feature services and the command handler.

Feature services are thin adapters: build a prompt, get a client for the
active credential, run the call through the resilient invoker, shape the result.
"""
