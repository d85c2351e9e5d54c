"""Debug module - event tracing and logging setup."""
from .trace import EventType, TraceEvent, Tracer, setup_logging

__all__ = ['EventType', 'TraceEvent', 'Tracer', 'setup_logging']
