"""
Pytest configuration file.

This file is automatically loaded by pytest before any tests run.
It sets up the test environment configuration and shared fixtures.
"""
import os
import sys
from pathlib import Path

# Set APP_ENV to test before any other imports
os.environ['APP_ENV'] = 'test'
os.environ.setdefault('OPENAI_API_KEY', 'sk-test-not-a-real-key-000000')

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest  # noqa: E402

from car_analysis.core.configuration import AnalysisConfig, OrchestratorConfig  # noqa: E402
from car_analysis.core.models import AnalysisBrief, CarDetails  # noqa: E402


@pytest.fixture
def analysis_config():
    """Fast, deterministic config: no status-update model calls."""
    return AnalysisConfig(enable_status_updates=False, allow_clarification=True)


@pytest.fixture
def orchestrator_config():
    return OrchestratorConfig(max_steps=3, tool_timeout_seconds=1, router_timeout_seconds=0.5)


@pytest.fixture
def corolla_brief():
    return AnalysisBrief(
        analysis_brief="Assess buying a 2018 Toyota Corolla hybrid in Ireland: price, running costs, reliability.",
        title="2018 Toyota Corolla - Comprehensive Analysis",
        car_details=CarDetails(make="Toyota", model="Corolla", year=2018, engine="hybrid"),
    )
