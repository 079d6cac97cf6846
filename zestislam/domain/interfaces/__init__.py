"""Domain Interfaces (Abstract Base Classes).

Defines contracts for external collaborators: AI models, caches,
conversation storage and the user interface.
"""
