"""Infrastructure layer components.

This module provides collaborator adapters (LLM text generation) and the
in-memory content repository.
"""

from app.infrastructure.llm import LLMTextGenerator
from app.infrastructure.memory_store import InMemoryContentRepository

__all__ = ["InMemoryContentRepository", "LLMTextGenerator"]
