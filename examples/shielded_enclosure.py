"""
Example: Shielded Enclosure with a Leaky Inner Box
==================================================
An equipment room fed by a 1 W antenna, leaking to the outside through
a ventilation hole and coupling into a small metal box through a slot.

Run with:
    pwb-solve examples/shielded_enclosure.py -o enclosure.h5

Room: 4 m × 3 m × 2.5 m aluminium walls, one lossy dielectric slab
Box: 0.3 m × 0.2 m × 0.1 m steel walls with a 10 mm circular aperture
Leak: 50 mm circular hole from the room to the outside
Band: 1-10 GHz, 91 points
"""

import numpy as np

from powerbalance import PowerBalanceModel

frequencies = np.linspace(1e9, 10e9, 91)

model = PowerBalanceModel(frequencies, "ShieldedEnclosure")

# Room: wall area and volume of a 4 x 3 x 2.5 m box, aluminium walls
room_area = 2 * (4 * 3 + 4 * 2.5 + 3 * 2.5)
model.add_cavity("ROOM", "Generic", [room_area, 4 * 3 * 2.5, 3.5e7])

# Inner box: stainless steel (sigma 1.4e6 S/m, mu_r 1)
box_area = 2 * (0.3 * 0.2 + 0.3 * 0.1 + 0.2 * 0.1)
model.add_cavity("BOX", "Generic", [box_area, 0.3 * 0.2 * 0.1, 1.4e6])

# Two identical 1 m² lossy dielectric panels on the room walls
model.add_absorber("PANEL", "ROOM", 2, "DielSurface", [1.0, 4.0, 0.05])

# Apertures
model.add_aperture("VENT", "ROOM", "EXT", "Circular", [0.025])
model.add_aperture("SLOT", "ROOM", "BOX", "Circular", [0.005])

# 1 W radiated into the room at every frequency
model.add_source("TX", "Direct", "ROOM", [1.0])

print("=" * 60)
print("Power Balance Model: Shielded Enclosure")
print("=" * 60)
print(f"Frequencies: {model.num_frequencies}")
print(f"Cavities: {model.num_cavities}")
print(f"Absorbers: {model.num_absorbers}")
print(f"Apertures: {model.num_apertures}")
print("=" * 60)
