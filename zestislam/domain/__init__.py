"""Domain Layer: value objects, error taxonomy, events and interfaces.

Has no dependencies on infrastructure or third-party SDKs.
"""
