"""
Orchestration Module

Two pipelines share the same tools, events and cancellation:

Car analyst (car_analyst.run_car_analyst):
┌──────────────────┐    ┌──────────────────┐    ┌──────────────────┐    ┌──────────────────┐
│ clarify_with_user│───▶│write_analysis_   │───▶│analysis_         │───▶│final_report_     │
│  (may end here)  │    │brief             │    │supervisor        │    │generation        │
└──────────────────┘    └──────────────────┘    └────────┬─────────┘    └──────────────────┘
                                                         │
                                          ┌──────────────┼──────────────┐
                                          ▼              ▼              ▼
                                     purchase      running costs   reliability
                                    specialist      specialist      specialist
                                    (analyze, then compress)

Lightweight orchestrator (orchestrator.run_orchestrator_step):
keyword router ─▶ model router (2s, falls back to plan) ─▶ exactly one step:
plan | purchase_advice | running_cost | reliability | synthesis | finalize
"""
