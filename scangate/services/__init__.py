"""
Admission pipeline, read views and the admin access gate.
"""

from .access import ApiKeyAuthorizer
from .admission import AdmissionPipeline
from .views import ScanViews

__all__ = [
    "AdmissionPipeline",
    "ScanViews",
    "ApiKeyAuthorizer",
]
