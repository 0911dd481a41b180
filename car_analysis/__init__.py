"""
Car analysis service: a supervisor/specialist analysis pipeline and a
lightweight router/planner orchestrator behind one streaming HTTP API.
"""

__version__ = "1.0.0"
