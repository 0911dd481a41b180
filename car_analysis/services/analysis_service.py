"""
Process-wide collaborators shared by the HTTP handlers.

One AnalysisService lives for the lifetime of the app; every request gets a
fresh RunContext from ``new_context``.
"""
import logging
from typing import List, Optional

from car_analysis.core.configuration import AnalysisConfig, OrchestratorConfig
from car_analysis.core.context import CancellationToken, RunContext
from car_analysis.core.events import EventEmitter, EventSink
from car_analysis.core.messages import ConversationTurn
from car_analysis.llm.provider import ModelSelector, default_model_selector
from car_analysis.orchestration.router import Router, build_default_router
from car_analysis.services.stores import (
    DocumentStore,
    InMemoryDocumentStore,
    InMemoryMessageStore,
    InMemoryRunStore,
    MessageStore,
    RunStore,
)
from car_analysis.tools.registry import ToolRegistry, build_default_registry
from car_analysis.tools.web_search import TavilyClient

logger = logging.getLogger(__name__)


class AnalysisService:
    def __init__(
        self,
        model_selector: ModelSelector = default_model_selector,
        tools: Optional[ToolRegistry] = None,
        tavily_client: Optional[TavilyClient] = None,
        document_store: Optional[DocumentStore] = None,
        message_store: Optional[MessageStore] = None,
        run_store: Optional[RunStore] = None,
        analysis_config: Optional[AnalysisConfig] = None,
        orchestrator_config: Optional[OrchestratorConfig] = None,
        router: Optional[Router] = None,
    ):
        self.model_selector = model_selector
        self.analysis_config = analysis_config or AnalysisConfig()
        self.orchestrator_config = orchestrator_config or OrchestratorConfig()
        self.tavily_client = tavily_client
        if tools is None:
            self.tavily_client = tavily_client or TavilyClient()
            tools = build_default_registry(self.tavily_client, self.orchestrator_config.tool_timeout_seconds)
        self.tools = tools
        self.document_store = document_store or InMemoryDocumentStore()
        self.message_store = message_store or InMemoryMessageStore()
        self.run_store = run_store or InMemoryRunStore()
        self.router = router or build_default_router(
            self.orchestrator_config.model, self.orchestrator_config.router_timeout_seconds
        )

    def new_context(self, request_id: str, sink: EventSink, messages: List[ConversationTurn]) -> RunContext:
        return RunContext(
            request_id=request_id,
            emitter=EventEmitter(sink),
            model_selector=self.model_selector,
            tools=self.tools,
            messages=list(messages),
            cancel_token=CancellationToken(),
            document_store=self.document_store,
        )

    async def close(self) -> None:
        if self.tavily_client is not None:
            await self.tavily_client.close()
            logger.info("Closed web search client")
