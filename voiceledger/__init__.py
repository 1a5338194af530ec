"""
VoiceLedger

Voice-dictated bookkeeping for small businesses: spoken expenses and
incomes become validated ledger records, scoped to the tenant and role
of the person who dictated them.
"""

from voiceledger.authorization.permissions import PermissionResolver, authorize
from voiceledger.normalization.engine import NormalizationEngine, classify, normalize

__version__ = "0.1.0"

__all__ = [
    "NormalizationEngine",
    "PermissionResolver",
    "authorize",
    "classify",
    "normalize",
]
