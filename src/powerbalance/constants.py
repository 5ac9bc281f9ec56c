"""Physical constants used throughout the power balance model."""

import numpy as np

# Speed of light in vacuum (m/s)
C0 = 299792458.0

# Vacuum permeability (H/m) and permittivity (F/m)
MU0 = 4.0 * np.pi * 1e-7
EPS0 = 1.0 / (MU0 * C0 * C0)

# Impedance of free space (ohm)
ETA0 = MU0 * C0

# Names of the implicit nodes
EXT = "EXT"
REF = "REF"
