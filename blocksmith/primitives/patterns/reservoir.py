"""Salt dome reservoir pattern.

A salt diapir narrowing upward, capped by a thin cap rock, with oil and gas
trapped in sands on its flanks. Facies are assigned from position relative
to the dome and to the gas-oil and oil-water contacts. Porosity and fluid
saturations replace density and grades for this pattern.

Depths are depth fractions (0 at the ground surface, 1 at the model base).

Prepare draw order: centre x, y; dome top; dome base; radius x, y; cap
thickness; trap width; gas-oil contact; oil-water contact; salt porosity;
cap rock porosity; gas sand base porosity and saturation; oil sand base
porosity, saturation and solution gas; noise seed. Per cell: one porosity
draw.
"""

from dataclasses import dataclass

import numpy as np

from blocksmith.objects.block import FieldSemantics
from blocksmith.objects.gridspec import GridSpec
from blocksmith.objects.request import PatternType
from blocksmith.primitives.grid import CellBatch
from blocksmith.primitives.noise import NoiseField
from blocksmith.primitives.patterns._common import (
    BACKGROUND_FACIES,
    PatternDefinition,
    fraction,
    override,
    reservoir_bundle,
)
from blocksmith.primitives.random_stream import RandomStream
from blocksmith.utils.errors import raise_parameter_error

POROSITY_LIMITS = (0.01, 0.35)
SATURATION_LIMITS = (0.0, 100.0)

# Porosity ranges drawn per cell for the non-reservoir sands and shale
WATER_SAND_POROSITY = (0.15, 0.25)
SHALE_POROSITY = (0.10, 0.15)

# Oil: barrels per tonne of pore fluid, price, lifting cost
BARRELS_PER_TONNE = 6.29
OIL_PRICE = 50.0
OIL_COST = 20.0
# Gas: MCF per tonne of pore fluid, price, lifting cost
MCF_PER_TONNE = 35.0
GAS_PRICE = 3.0
GAS_COST = 15.0
# Minimum saturation (%) for a sand to count as pay
PAY_SATURATION = 10.0
SEAL_VALUE = -10.0
WET_VALUE = -5.0


@dataclass(frozen=True)
class _DomeState:
    centre: tuple
    radii: tuple
    top: float
    base: float
    cap_thickness: float
    trap_width: float
    gas_oil_contact: float
    oil_water_contact: float
    salt_porosity: float
    cap_porosity: float
    gas_porosity: float
    gas_saturation: float
    oil_porosity: float
    oil_saturation: float
    solution_gas: float
    noise: NoiseField


def _check_dome(params: dict) -> None:
    top, base = params["dome_top"], params["dome_base"]
    if top is not None and base is not None and not top < base:
        raise_parameter_error(
            "dome_top", top, constraint="dome_top must be shallower than dome_base"
        )
    goc, owc = params["gas_oil_contact"], params["oil_water_contact"]
    if goc is not None and owc is not None and not goc < owc:
        raise_parameter_error(
            "gas_oil_contact",
            goc,
            constraint="gas_oil_contact must be above oil_water_contact",
        )


def _prepare_dome(grid: GridSpec, params: dict, stream: RandomStream) -> _DomeState:
    cx = override(params, "center_x", stream.uniform(0.4, 0.6))
    cy = override(params, "center_y", stream.uniform(0.4, 0.6))
    top = override(params, "dome_top", stream.uniform(0.05, 0.15))
    base = override(params, "dome_base", stream.uniform(0.60, 0.75))
    rx = override(params, "radius_x", stream.uniform(0.12, 0.22))
    ry = override(params, "radius_y", stream.uniform(0.12, 0.22))
    cap = override(params, "cap_thickness", stream.uniform(0.03, 0.08))
    trap = override(params, "trap_width", stream.uniform(0.20, 0.35))
    # Contacts are shares of the dome height below its top
    goc = override(params, "gas_oil_contact", stream.uniform(0.10, 0.25))
    owc = override(params, "oil_water_contact", stream.uniform(0.35, 0.60))

    salt_porosity = stream.uniform(0.005, 0.015)
    cap_porosity = stream.uniform(0.03, 0.07)
    gas_porosity = stream.uniform(0.18, 0.25)
    gas_saturation = stream.uniform(55.0, 70.0)
    oil_porosity = stream.uniform(0.16, 0.22)
    oil_saturation = stream.uniform(45.0, 60.0)
    solution_gas = stream.uniform(3.0, 8.0)
    noise = NoiseField.from_stream(stream, frequency=3.0)

    if base <= top:
        base = min(1.0, top + 0.1)
    height = base - top
    if owc <= goc:
        owc = min(1.0, goc + 0.1)

    return _DomeState(
        centre=(cx, cy),
        radii=(rx, ry),
        top=top,
        base=base,
        cap_thickness=cap,
        trap_width=trap / max(rx, ry),
        gas_oil_contact=top + goc * height,
        oil_water_contact=top + owc * height,
        salt_porosity=salt_porosity,
        cap_porosity=cap_porosity,
        gas_porosity=gas_porosity,
        gas_saturation=gas_saturation,
        oil_porosity=oil_porosity,
        oil_saturation=oil_saturation,
        solution_gas=solution_gas,
        noise=noise,
    )


def _synthesize_dome(state: _DomeState, batch: CellBatch, draws: np.ndarray) -> dict:
    n = batch.size
    cx, cy = state.centre
    rx, ry = state.radii
    w = batch.w
    distance = np.sqrt(((batch.u - cx) / rx) ** 2 + ((batch.v - cy) / ry) ** 2)

    # 0 at the dome base, 1 at its top; the dome narrows to 70% at the top
    relative_height = np.clip((state.base - w) / (state.base - state.top), 0.0, 1.0)
    radius_here = 1.0 - 0.3 * relative_height

    in_column = distance < radius_here
    salt = in_column & (w >= state.top) & (w <= state.base)
    cap = (distance < 0.7) & (w >= state.top - state.cap_thickness) & (w < state.top)
    flank = ~in_column & (distance < radius_here + state.trap_width)
    trap = flank & (w >= state.top) & (w <= state.oil_water_contact) & ~salt & ~cap
    gas = trap & (w < state.gas_oil_contact)
    oil = trap & ~gas
    water = ~salt & ~cap & ~trap & (w > state.oil_water_contact) & (w <= state.base)

    facies = np.full(n, BACKGROUND_FACIES, dtype=object)
    facies[water] = "WaterSand"
    facies[oil] = "OilSand"
    facies[gas] = "GasSand"
    facies[cap] = "CapRock"
    facies[salt] = "Salt"

    trap_factor = np.clip(1.0 - (distance - radius_here) / state.trap_width, 0.0, 1.0)
    porosity = SHALE_POROSITY[0] + draws[:, 0] * (SHALE_POROSITY[1] - SHALE_POROSITY[0])
    porosity = np.where(
        water,
        WATER_SAND_POROSITY[0] + draws[:, 0] * (WATER_SAND_POROSITY[1] - WATER_SAND_POROSITY[0]),
        porosity,
    )
    porosity = np.where(oil, state.oil_porosity + trap_factor * 0.12, porosity)
    porosity = np.where(gas, state.gas_porosity + trap_factor * 0.10, porosity)
    porosity = np.where(cap, state.cap_porosity, porosity)
    porosity = np.where(salt, state.salt_porosity, porosity)

    oil_sat = np.where(oil, state.oil_saturation + trap_factor * 40.0, 0.0)
    gas_sat = np.where(gas, state.gas_saturation + trap_factor * 30.0, 0.0)
    gas_sat = np.where(oil, state.solution_gas + trap_factor * 5.0, gas_sat)

    variation = 1.0 + (state.noise.sample(batch.u, batch.v, batch.w) - 0.5) * 0.2
    porosity = np.clip(porosity * variation, *POROSITY_LIMITS)
    oil_sat = np.clip(oil_sat * variation, *SATURATION_LIMITS)
    gas_sat = np.clip(gas_sat * variation, *SATURATION_LIMITS)

    econ = np.full(n, SEAL_VALUE)
    econ[water] = WET_VALUE
    oil_pay = oil & (oil_sat > PAY_SATURATION)
    gas_pay = gas & (gas_sat > PAY_SATURATION)
    econ[oil & ~oil_pay] = WET_VALUE
    econ[gas & ~gas_pay] = WET_VALUE
    oil_value = porosity * oil_sat / 100.0 * BARRELS_PER_TONNE * OIL_PRICE - OIL_COST
    gas_value = porosity * gas_sat / 100.0 * MCF_PER_TONNE * GAS_PRICE - GAS_COST
    econ = np.where(oil_pay, oil_value, econ)
    econ = np.where(gas_pay, gas_value, econ)

    return reservoir_bundle(facies, porosity, oil_sat, gas_sat, econ)


SALT_DOME = PatternDefinition(
    pattern=PatternType.SALT_DOME,
    semantics=FieldSemantics.RESERVOIR,
    parameters=(
        fraction("center_x", description="Dome axis along x (drawn 0.4-0.6)"),
        fraction("center_y", description="Dome axis along y (drawn 0.4-0.6)"),
        fraction("dome_top", description="Depth fraction of the dome crest (drawn 0.05-0.15)"),
        fraction("dome_base", description="Depth fraction of the dome base (drawn 0.60-0.75)"),
        fraction("radius_x", None, 0.01, 1.0, "Basal radius along x (drawn 0.12-0.22)"),
        fraction("radius_y", None, 0.01, 1.0, "Basal radius along y (drawn 0.12-0.22)"),
        fraction("cap_thickness", None, 0.0, 0.5, "Cap rock thickness (drawn 0.03-0.08)"),
        fraction("trap_width", None, 0.01, 1.0, "Flank trap width (drawn 0.20-0.35)"),
        fraction("gas_oil_contact", description="Gas-oil contact below crest, share of dome height"),
        fraction("oil_water_contact", description="Oil-water contact below crest, share of dome height"),
    ),
    prepare=_prepare_dome,
    synthesize=_synthesize_dome,
    draws_per_cell=1,
    check=_check_dome,
    description="Salt diapir with cap rock and flank oil and gas traps",
)
