"""
Configuration Module

Local agent settings and the remote connect reply.
"""

from apmcore.config.reply import ConnectReply, MetricRule, apply_rules
from apmcore.config.settings import (
    AgentSettings,
    ApplicationLoggingSettings,
    AttributeSettings,
    DistributedTracingSettings,
    ErrorCollectorSettings,
    TransactionEventsSettings,
    get_settings,
)

__all__ = [
    "AgentSettings",
    "ApplicationLoggingSettings",
    "AttributeSettings",
    "ConnectReply",
    "DistributedTracingSettings",
    "ErrorCollectorSettings",
    "MetricRule",
    "TransactionEventsSettings",
    "apply_rules",
    "get_settings",
]
