from .bandwidth_gate import BandwidthGate
from .conversion_service import ConversionEngine
from .rate_coordinator import CoordinatorState, RateCoordinator, RateReducer

__all__ = ['BandwidthGate', 'ConversionEngine', 'CoordinatorState', 'RateCoordinator', 'RateReducer']
