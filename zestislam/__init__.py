"""ZestIslam: resilient AI-backed Islamic lifestyle assistant.

Provides a credential pool with rotation, a retry/backoff invoker and the
feature adapters (Quran/Hadith search, scholar chat, dream interpretation,
quiz, prayer times) that run through them.
"""

__version__ = "0.3.0"
