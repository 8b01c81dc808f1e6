"""Equilibrium simulation and mating-system classification.

The population is iterated for a fixed number of generations from one of
two starting states and assumed to have settled; there is no convergence
test. The default of 10000 generations is a heuristic that is usually
sufficient, not a proven bound.

Classification compares the female, male and inconstant aggregates with a
presence threshold, first match wins:

    SSD  female, male and inconstant all present
    DIO  female and male
    PGD  female and inconstant
    PAD  male and inconstant
    INC  inconstant only
    NONE anything else
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Union

import numpy as np

from dioecy_evo.dynamics import step
from dioecy_evo.models import ModelStructure
from dioecy_evo.types import EquilibriumState, InvasionMode, ModelParameters


DEFAULT_ITERATIONS: int = 10000
DEFAULT_THRESHOLD: float = 0.01


@dataclass
class EquilibriumResult:
    """Final state of one (or a block of) simulated populations."""
    frequencies: np.ndarray   # (..., n_genotypes)
    female: np.ndarray        # (...,)
    male: np.ndarray          # (...,)
    inconstant: np.ndarray    # (...,)
    state: np.ndarray         # (...,) int8 EquilibriumState codes
    generations: int

    @property
    def category(self) -> EquilibriumState:
        """State of a single-population result."""
        return EquilibriumState(int(np.asarray(self.state).reshape(-1)[0]))

    def genotype_record(self, model: ModelStructure) -> Dict[str, float]:
        return model.as_record(np.asarray(self.frequencies).reshape(-1, model.n_genotypes)[0])


def classify_batch(
    female: np.ndarray,
    male: np.ndarray,
    inconstant: np.ndarray,
    threshold: float = DEFAULT_THRESHOLD,
) -> np.ndarray:
    """Vectorised classification; returns int8 EquilibriumState codes."""
    has_f = np.asarray(female) > threshold
    has_m = np.asarray(male) > threshold
    has_i = np.asarray(inconstant) > threshold
    conditions = [
        has_f & has_m & has_i,
        has_f & has_m,
        has_f & has_i,
        has_m & has_i,
        has_i,
    ]
    choices = [
        EquilibriumState.SSD,
        EquilibriumState.DIO,
        EquilibriumState.PGD,
        EquilibriumState.PAD,
        EquilibriumState.INC,
    ]
    return np.select(conditions, choices, default=EquilibriumState.NONE).astype(np.int8)


def classify(
    female: float,
    male: float,
    inconstant: float,
    threshold: float = DEFAULT_THRESHOLD,
) -> EquilibriumState:
    """Classify a single population from its three aggregates."""
    return EquilibriumState(int(classify_batch(female, male, inconstant, threshold)))


def initial_population(
    model: ModelStructure,
    mode: Union[InvasionMode, str],
    n_cells: Optional[int] = None,
) -> np.ndarray:
    """Starting frequencies, optionally tiled to (n_cells, n_genotypes)."""
    freqs = model.initial_frequencies(InvasionMode(mode))
    if n_cells is None:
        return freqs
    return np.tile(freqs, (n_cells, 1))


def run_to_equilibrium(
    model: ModelStructure,
    params: ModelParameters,
    mode: Union[InvasionMode, str] = InvasionMode.DIOECY,
    iterations: int = DEFAULT_ITERATIONS,
    n_cells: Optional[int] = None,
) -> np.ndarray:
    """Iterate the recurrence ``iterations`` times from the invasion start.

    Args:
        model: Model variant tables.
        params: Model parameters; Q and F of shape (n_cells,) to run a
            block of grid cells at once.
        mode: Starting state (dioecy or pseudo-gynodioecy).
        iterations: Number of generations.
        n_cells: Number of cells when Q/F are per-cell arrays.

    Returns:
        Final frequencies, (n_genotypes,) or (n_cells, n_genotypes).
    """
    if iterations < 0:
        raise ValueError(f"iterations must be >= 0, got {iterations}")
    freqs = initial_population(model, mode, n_cells)
    selfing_table = model.selfing_table(params.ppY)
    generation = 0
    while generation < iterations:
        freqs = step(freqs, model, params, selfing_table)
        generation += 1
    return freqs


def simulate(
    model: ModelStructure,
    params: ModelParameters,
    mode: Union[InvasionMode, str] = InvasionMode.DIOECY,
    iterations: int = DEFAULT_ITERATIONS,
    threshold: float = DEFAULT_THRESHOLD,
    n_cells: Optional[int] = None,
) -> EquilibriumResult:
    """Run to equilibrium and classify the final population(s)."""
    freqs = run_to_equilibrium(model, params, mode, iterations, n_cells)
    female, male, inconstant = model.aggregate(freqs)
    return EquilibriumResult(
        frequencies=freqs,
        female=female,
        male=male,
        inconstant=inconstant,
        state=classify_batch(female, male, inconstant, threshold),
        generations=iterations,
    )
