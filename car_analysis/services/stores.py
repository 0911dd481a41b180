"""
Collaborator stores consumed by the pipelines.

Persistence lives outside this service; these protocols describe what the
pipelines need from it, and the in-memory implementations back the API and
the tests.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from car_analysis.core.messages import ConversationTurn

logger = logging.getLogger(__name__)


@dataclass
class Document:
    id: str
    title: str
    kind: str = "text"
    content: str = ""
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)


class DocumentStore(Protocol):
    def create_document(self, document_id: str, title: str, kind: str) -> Document:
        ...

    def update_document(self, document_id: str, content: str) -> Document:
        ...

    def get_document(self, document_id: str) -> Optional[Document]:
        ...


class MessageStore(Protocol):
    def save_message(self, chat_id: str, turn: ConversationTurn) -> None:
        ...

    def get_messages(self, chat_id: str) -> List[ConversationTurn]:
        ...


@dataclass
class StepRecord:
    step: str
    started_at: float
    turn: str = ""
    ended_at: Optional[float] = None
    error: Optional[str] = None


class RunStore(Protocol):
    def start_step(self, run_id: str, step: str, turn: str = "") -> int:
        ...

    def end_step(self, run_id: str, index: int, error: Optional[str] = None) -> None:
        ...

    def add_sources(self, run_id: str, sources: List[Dict[str, str]]) -> None:
        ...

    def step_count(self, run_id: str, turn: Optional[str] = None) -> int:
        ...


class InMemoryDocumentStore:
    def __init__(self):
        self._documents: Dict[str, Document] = {}
        self._lock = threading.Lock()

    def create_document(self, document_id: str, title: str, kind: str = "text") -> Document:
        with self._lock:
            document = Document(id=document_id, title=title, kind=kind)
            self._documents[document_id] = document
        logger.info(f"📄 Created document {document_id} ({kind})")
        return document

    def update_document(self, document_id: str, content: str) -> Document:
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                raise KeyError(f"Unknown document: {document_id}")
            document.content = content
            document.updated_at = time.time()
        return document

    def get_document(self, document_id: str) -> Optional[Document]:
        return self._documents.get(document_id)


class InMemoryMessageStore:
    def __init__(self):
        self._chats: Dict[str, List[ConversationTurn]] = {}
        self._lock = threading.Lock()

    def save_message(self, chat_id: str, turn: ConversationTurn) -> None:
        with self._lock:
            self._chats.setdefault(chat_id, []).append(turn)

    def get_messages(self, chat_id: str) -> List[ConversationTurn]:
        return list(self._chats.get(chat_id, []))


class InMemoryRunStore:
    def __init__(self):
        self._steps: Dict[str, List[StepRecord]] = {}
        self._sources: Dict[str, List[Dict[str, str]]] = {}
        self._lock = threading.Lock()

    def start_step(self, run_id: str, step: str, turn: str = "") -> int:
        with self._lock:
            steps = self._steps.setdefault(run_id, [])
            steps.append(StepRecord(step=step, started_at=time.time(), turn=turn))
            return len(steps) - 1

    def end_step(self, run_id: str, index: int, error: Optional[str] = None) -> None:
        with self._lock:
            record = self._steps[run_id][index]
            record.ended_at = time.time()
            record.error = error

    def add_sources(self, run_id: str, sources: List[Dict[str, str]]) -> None:
        if not sources:
            return
        with self._lock:
            known = {s.get("url") for s in self._sources.get(run_id, [])}
            bucket = self._sources.setdefault(run_id, [])
            for source in sources:
                if source.get("url") not in known:
                    bucket.append(source)
                    known.add(source.get("url"))

    def step_count(self, run_id: str, turn: Optional[str] = None) -> int:
        """Steps recorded for the run; only those answering ``turn`` when it is given."""
        steps = self._steps.get(run_id, [])
        if turn is None:
            return len(steps)
        return sum(1 for s in steps if s.turn == turn)

    def steps(self, run_id: str) -> List[StepRecord]:
        return list(self._steps.get(run_id, []))

    def sources(self, run_id: str) -> List[Dict[str, str]]:
        return list(self._sources.get(run_id, []))
