"""
Call log shipping for the Craftsman Phone Assistant
"""

from .call_log_sink import CallLogRecord, CallLogSink, create_call_log_sink

__all__ = ["CallLogRecord", "CallLogSink", "create_call_log_sink"]
