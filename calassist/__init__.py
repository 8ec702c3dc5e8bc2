"""calassist - natural-language calendar drafting with conflict-aware scheduling.

Turns requests like "Lunch with Sarah next Friday at noon" into event drafts,
checks them against existing events and suggests free slots. Hosted language
models (OpenRouter, Hugging Face) are consulted only for requests the local
rules cannot classify.
"""

__version__ = "1.0.0"
