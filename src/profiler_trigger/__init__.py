"""
Profiler Trigger - Alerting & Profiling-Trigger Engine

Decides when a runtime should capture a CPU/memory profile, from metric
threshold breaches, request-latency breaches, an operator-issued collection
plan, or a default periodic cadence.
"""

__version__ = "0.1.0"
