"""
Physical & Solver Constants
===========================
Default physical parameters for the compensation solvers.

The drag coefficient k1 = k0 / m is defined through the quadratic drag law
f = k0 * v². Literature values around 0.1 overestimate the drop of real
17 mm rounds badly; 0.008 is the value tuned against observed shots and is
only a default. Pass the measured value per call (see calibration.py).
"""

import numpy as np


PI                 = np.pi
DEFAULT_GRAVITY    = 9.7803      # m/s²  (equatorial value used by the turret firmware)
DEFAULT_K1         = 0.008       # 1/m   k0 / m
DEFAULT_ITERATIONS = 10          # fixed-point rounds
DEFAULT_TOLERANCE  = 1e-3        # m     |residual| accepted as converged
