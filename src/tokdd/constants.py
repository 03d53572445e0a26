"""
constants.py
============

Physical constants used by the flux-surface and equilibrium routines.

Philosophy:
------------
• Avoid magic numbers elsewhere in the code
• Keep everything in SI units

Primary sources:
----------------
• CODATA 2018
"""

import numpy as np

# ============================================================
# MATHEMATICAL CONSTANTS
# ============================================================

PI = np.pi
TWO_PI = 2.0 * np.pi

# ============================================================
# FUNDAMENTAL PHYSICAL CONSTANTS (SI UNITS)
# ============================================================

# Elementary charge [C]
E_CHARGE = 1.602176634e-19

# Vacuum permeability [H/m]
MU0 = 4.0e-7 * np.pi

# ============================================================
# UNIT HELPERS
# ============================================================

# Mega-ampere [A]
MA = 1.0e6
