"""
Services module: persistence collaborators and the process-wide service
object the HTTP layer hands to each request.
"""
from car_analysis.services.stores import (
    Document,
    DocumentStore,
    InMemoryDocumentStore,
    InMemoryMessageStore,
    InMemoryRunStore,
    MessageStore,
    RunStore,
)

__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
    "InMemoryMessageStore",
    "InMemoryRunStore",
    "MessageStore",
    "RunStore",
]
