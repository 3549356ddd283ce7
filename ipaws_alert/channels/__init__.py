"""
Channel routing configs for WEA, EAS and NWEM
"""

from ..cap.models import WEA_HANDLING, EAS_HANDLING, NWEM_HANDLING, BROADCAST
from .config import (
    WeaChannel, EasChannel, NwemChannel,
    EAS_ORG_PARAMETER, VTEC_PARAMETER, HVTEC_PARAMETER, PIL_PARAMETER, UGC_GEOCODE,
)

__all__ = [
    'WeaChannel', 'EasChannel', 'NwemChannel',
    'WEA_HANDLING', 'EAS_HANDLING', 'NWEM_HANDLING', 'BROADCAST',
    'EAS_ORG_PARAMETER', 'VTEC_PARAMETER', 'HVTEC_PARAMETER', 'PIL_PARAMETER', 'UGC_GEOCODE',
]
