"""
Typed state for the car analysis graphs.
"""
from typing import Annotated, Any, Dict, List, Optional, Sequence, TypedDict

from langchain_core.messages import BaseMessage
from langgraph.graph import add_messages

from car_analysis.core.models import AnalysisBrief, ReportResult


class AgentState(TypedDict, total=False):
    """
    State of the top-level car analyst graph.

    Attributes:
        input_messages: Normalized conversation handed in by the caller
        clarification_question: Set when the run stops to ask the user
        brief: Output of the brief writer
        notes: Compressed specialist findings, one entry per specialist
        raw_notes: Uncompressed tool/assistant text, one entry per dispatch
        supervisor_iterations: Iterations the supervisor loop used
        report: Final report artifact
    """
    input_messages: List[BaseMessage]
    clarification_question: Optional[str]
    brief: Optional[AnalysisBrief]
    notes: List[str]
    raw_notes: List[str]
    supervisor_iterations: int
    report: Optional[ReportResult]


class SupervisorState(TypedDict, total=False):
    """
    State of the supervisor loop. Only the loop's own nodes write to it.

    Attributes:
        supervisor_messages: Coordination transcript (auto-merged via add_messages)
        brief: The run's analysis brief, read-only inside the loop
        analysis_iterations: COORDINATING steps taken so far
        pending_tool_calls: Tool calls of the latest coordination response
        notes: Compressed analyses accumulated so far
        raw_notes: Raw specialist notes accumulated so far
        dispatched: Specialists actually run
        done: Set once an exit condition fired
    """
    supervisor_messages: Annotated[Sequence[BaseMessage], add_messages]
    brief: AnalysisBrief
    analysis_iterations: int
    pending_tool_calls: List[Dict[str, Any]]
    notes: List[str]
    raw_notes: List[str]
    dispatched: int
    done: bool


class SpecialistState(TypedDict, total=False):
    """One specialist invocation; created by the supervisor, dropped after compression."""
    topic: str
    analysis_topic: str
    specialist_messages: List[BaseMessage]
    tool_call_iterations: int
