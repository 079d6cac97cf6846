"""Infrastructure Layer: concrete implementations and adapters.

Credential pool, resilient invoker, provider clients, HTTP data clients,
caching, storage, configuration and logging.
"""
