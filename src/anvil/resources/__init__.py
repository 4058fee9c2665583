"""
Typed Anvil resources built from API responses.
"""

from .base import (
    Identifiable,
    Mutable,
    Reloadable,
    Resource,
    normalize_key,
    normalize_keys,
)
from .pdf import PDF
from .signature import PacketStatus, SignaturePacket, Signer
from .webform import FIELD_TYPES, Webform, WebformSubmission
from .workflow import SubmissionStatus, Workflow, WorkflowStatus, WorkflowSubmission

__all__ = [
    "FIELD_TYPES",
    "PDF",
    "Identifiable",
    "Mutable",
    "PacketStatus",
    "Reloadable",
    "Resource",
    "SignaturePacket",
    "Signer",
    "SubmissionStatus",
    "Webform",
    "WebformSubmission",
    "Workflow",
    "WorkflowStatus",
    "WorkflowSubmission",
    "normalize_key",
    "normalize_keys",
]
