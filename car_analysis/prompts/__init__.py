"""
Prompt templates for every model call the service makes.
"""

from car_analysis.prompts.base import PromptTemplate
from car_analysis.prompts.analysis_prompts import (
    AnalysisBriefPrompt,
    ClarifyPrompt,
    CompressionPrompt,
    FinalReportPrompt,
    SpecialistPrompt,
    SpecialistTaskPrompt,
    StatusUpdatePrompt,
    SupervisorPrompt,
)
from car_analysis.prompts.orchestrator_prompts import (
    PlannerPrompt,
    PurchaseAdvicePrompt,
    ReliabilityPrompt,
    RouterPrompt,
    RunningCostPrompt,
    SynthesisPrompt,
)

__all__ = [
    'PromptTemplate',
    'AnalysisBriefPrompt',
    'ClarifyPrompt',
    'CompressionPrompt',
    'FinalReportPrompt',
    'SpecialistPrompt',
    'SpecialistTaskPrompt',
    'StatusUpdatePrompt',
    'SupervisorPrompt',
    'PlannerPrompt',
    'PurchaseAdvicePrompt',
    'ReliabilityPrompt',
    'RouterPrompt',
    'RunningCostPrompt',
    'SynthesisPrompt',
]
