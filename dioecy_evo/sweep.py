"""Parameter sweep over the (Q, F) plane.

Each cell (x, y) of a ``subdivisions`` x ``subdivisions`` grid is mapped to
a pair of cosex allocation parameters and simulated independently from the
same starting state:

  axes='QF'  Q = x / (n-1),  F = y / (n-1)                 (both in [0, 1])
  axes='Kk'  K = x / (n-1) * limit,  k = y / (n-1) * limit,
             Q = 1 / (1+K),  F = 1 / (1+k)

Maps are indexed ``[y, x]``: row y holds the cells with F (or k) at its
y-th value, so row 0 is the bottom row of the rendered image.

Cells are iterated together as one numpy block per row range; with
``workers > 1`` the row ranges are farmed out to worker processes, each
owning its own parameter copy and frequency arrays. The parent writes the
results into disjoint rows and freezes the maps once every block has
returned.
"""

from __future__ import annotations

import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from dioecy_evo.config import SimulationConfig
from dioecy_evo.equilibrium import EquilibriumResult, simulate
from dioecy_evo.models import get_model
from dioecy_evo.types import (
    EquilibriumState,
    InvasionMode,
    ModelParameters,
    k_to_q,
    q_to_k,
)


# ═══════════════════════════════════════════════════════════════════════
# GRID AXES
# ═══════════════════════════════════════════════════════════════════════


def axis_values(subdivisions: int, axes: str = 'QF', limit: float = 4.0) -> np.ndarray:
    """Raw axis coordinate of each grid index (Q/F or K/k depending on ``axes``)."""
    if subdivisions < 2:
        raise ValueError(f"subdivisions must be >= 2, got {subdivisions}")
    fraction = np.arange(subdivisions, dtype=np.float64) / (subdivisions - 1)
    if axes == 'QF':
        return fraction
    if axes == 'Kk':
        return fraction * limit
    raise ValueError(f"axes must be 'QF' or 'Kk', got '{axes}'")


def allocation_values(subdivisions: int, axes: str = 'QF', limit: float = 4.0) -> np.ndarray:
    """Q (or F) value of each grid index."""
    raw = axis_values(subdivisions, axes, limit)
    return raw if axes == 'QF' else k_to_q(raw)


def grid_parameters(
    subdivisions: int,
    axes: str = 'QF',
    limit: float = 4.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """Q and F of every cell as two (n, n) arrays indexed [y, x]."""
    values = allocation_values(subdivisions, axes, limit)
    F, Q = np.meshgrid(values, values, indexing='ij')
    return Q, F


# ═══════════════════════════════════════════════════════════════════════
# RESULTS
# ═══════════════════════════════════════════════════════════════════════


@dataclass
class SweepResult:
    """Classification map and aggregate maps of a completed sweep.

    All maps are (subdivisions, subdivisions), indexed [y, x], read-only.
    """
    states: np.ndarray       # int8 EquilibriumState codes
    female: np.ndarray
    male: np.ndarray
    inconstant: np.ndarray
    Q: np.ndarray
    F: np.ndarray
    config: SimulationConfig
    elapsed_s: float = 0.0

    @property
    def subdivisions(self) -> int:
        return self.states.shape[0]

    def category_counts(self) -> Dict[str, int]:
        """Number of cells in each category (all categories listed)."""
        codes, counts = np.unique(self.states, return_counts=True)
        found = dict(zip(codes.tolist(), counts.tolist()))
        return {state.name: int(found.get(int(state), 0)) for state in EquilibriumState}

    def to_dataframe(self) -> pd.DataFrame:
        """One row per cell: grid position, parameters, aggregates, state."""
        n = self.subdivisions
        y, x = np.meshgrid(np.arange(n), np.arange(n), indexing='ij')
        with np.errstate(divide='ignore'):
            K = q_to_k(self.Q)
            k = q_to_k(self.F)
        names = np.array([state.name for state in EquilibriumState])
        return pd.DataFrame({
            'x': x.ravel(),
            'y': y.ravel(),
            'Q': self.Q.ravel(),
            'F': self.F.ravel(),
            'K': K.ravel(),
            'k': k.ravel(),
            'female': self.female.ravel(),
            'male': self.male.ravel(),
            'inconstant': self.inconstant.ravel(),
            'state': names[self.states.ravel()],
        })


# ═══════════════════════════════════════════════════════════════════════
# DRIVER
# ═══════════════════════════════════════════════════════════════════════


def _simulate_block(
    variant: int,
    params: ModelParameters,
    invasion: str,
    iterations: int,
    threshold: float,
    Q: np.ndarray,
    F: np.ndarray,
) -> EquilibriumResult:
    """Simulate a flat block of cells (module level so workers can unpickle it)."""
    model = get_model(variant)
    return simulate(
        model,
        params.at(Q=Q, F=F),
        mode=invasion,
        iterations=iterations,
        threshold=threshold,
        n_cells=len(Q),
    )


def _row_blocks(n_rows: int, n_blocks: int) -> List[Tuple[int, int]]:
    """Split [0, n_rows) into at most ``n_blocks`` contiguous ranges."""
    edges = np.linspace(0, n_rows, min(n_blocks, n_rows) + 1).round().astype(int)
    return [(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]


def run_sweep(config: SimulationConfig, verbose: Optional[bool] = None) -> SweepResult:
    """Simulate and classify every cell of the parameter grid.

    Args:
        config: Validated run configuration.
        verbose: Print progress (defaults to ``config.output.verbose``).

    Returns:
        SweepResult with read-only maps.
    """
    if verbose is None:
        verbose = config.output.verbose
    s = config.sweep
    n = s.subdivisions
    params = config.model.to_parameters()
    invasion = InvasionMode(s.invasion).value

    Q, F = grid_parameters(n, s.axes, s.axis_limit)
    states = np.zeros((n, n), dtype=np.int8)
    female = np.zeros((n, n))
    male = np.zeros((n, n))
    inconstant = np.zeros((n, n))

    blocks = _row_blocks(n, s.workers * 4 if s.workers > 1 else 1)
    args = [
        (config.model.variant, params, invasion, s.iterations, s.threshold,
         Q[a:b].ravel(), F[a:b].ravel())
        for a, b in blocks
    ]

    t0 = time.perf_counter()
    if s.workers > 1:
        with ProcessPoolExecutor(max_workers=s.workers) as pool:
            results = list(pool.map(_simulate_block, *zip(*args)))
    else:
        results = [_simulate_block(*a) for a in args]

    for (a, b), res in zip(blocks, results):
        shape = (b - a, n)
        states[a:b] = res.state.reshape(shape)
        female[a:b] = res.female.reshape(shape)
        male[a:b] = res.male.reshape(shape)
        inconstant[a:b] = res.inconstant.reshape(shape)
        if verbose:
            print(f"  rows {a}-{b - 1} of {n} done")
    elapsed = time.perf_counter() - t0

    for arr in (states, female, male, inconstant, Q, F):
        arr.flags.writeable = False

    return SweepResult(
        states=states,
        female=female,
        male=male,
        inconstant=inconstant,
        Q=Q,
        F=F,
        config=config,
        elapsed_s=elapsed,
    )


def run_single_point(config: SimulationConfig) -> EquilibriumResult:
    """Simulate the single (Q, F) pair held in the model section."""
    s = config.sweep
    return simulate(
        get_model(config.model.variant),
        config.model.to_parameters(),
        mode=s.invasion,
        iterations=s.iterations,
        threshold=s.threshold,
    )
