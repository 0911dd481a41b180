"""
Core building blocks shared by both orchestration pipelines: messages,
events, errors, guards, configuration and the per-request run context.
"""
