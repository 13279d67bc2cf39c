"""
Workflows Module - Templated multi-step work with per-step timing.

Workflow -> WorkflowStep -> WorkflowTask -> WorkflowTaskLog
"""
