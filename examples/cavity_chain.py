"""
Example: Chain of Nested Cavities
=================================
Three nested cavities coupled by apertures given directly by their
transmission cross-section, with the inner cavity Q set from a
measured value instead of a wall model.

Run with:
    pwb-solve examples/cavity_chain.py -o chain.h5

The shielding effectiveness of each stage is the ratio of power
densities on either side of it; with identical apertures the two
stages differ only through the cavity losses.
"""

import numpy as np

from powerbalance import PowerBalanceModel, energy_params_from_q

frequencies = np.array([1e9, 2e9, 5e9, 10e9])

model = PowerBalanceModel(frequencies, "CavityChain")

# Lossless walls; all loss comes from the absorbers below
model.add_cavity("OUTER", "Generic", [24.0, 8.0, np.inf])
model.add_cavity("MIDDLE", "Generic", [6.0, 1.0, np.inf])
model.add_cavity("INNER", "Generic", [0.6, 0.03, np.inf])

# Measured composite Q of 1000 in the inner cavity, expressed as an ACS
inner_ccs, _, _ = energy_params_from_q(frequencies, 1000.0, 0.03)
model.add_absorber("LOSS", "INNER", 1, "ACS", [0.6, inner_ccs])

model.add_absorber("WALLS_OUTER", "OUTER", 1, "AE", [24.0, 0.01])
model.add_absorber("WALLS_MIDDLE", "MIDDLE", 1, "AE", [6.0, 0.005])

model.add_aperture("A1", "OUTER", "MIDDLE", "TCS", [1e-3, 2.5e-4])
model.add_aperture("A2", "MIDDLE", "INNER", "TCS", [1e-3, 2.5e-4])

model.add_source("FIELD", "Direct", "OUTER", [1.0])
