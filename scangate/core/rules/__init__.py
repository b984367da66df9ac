"""
Fraud policy evaluation and configuration management.
"""

from .fraud_policy import FraudPolicy, HistoryReader
from .policy_config import PolicyConfigLoader

__all__ = [
    "FraudPolicy",
    "HistoryReader",
    "PolicyConfigLoader",
]
