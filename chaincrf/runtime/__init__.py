"""
Runtime module: Clique tree calibration.
"""

from chaincrf.runtime.calibration import CalibrationResult, calibrate, root_tree

__all__ = ["CalibrationResult", "calibrate", "root_tree"]
