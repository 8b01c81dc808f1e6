"""Per-generation recurrence shared by both model variants.

One generation:
  1. Gamete pools: pollen from males and inconstants (the latter split
     between acting as cosex, weight h·Q, and as male, weight 1-h),
     Y-pollen viability (model 1), normalisation; eggs from females and
     from inconstants' outcrossed ovules, scaled by pollen limitation.
  2. Outcrossing: pollen x egg through the model's cross table.
  3. Selfing: inconstants add S·(1-d)·h·F times their self-cross ratios.
  4. YY viability V, then renormalisation to frequencies.

Every function works on a single frequency vector of shape (n_genotypes,)
or on a batch of shape (n_cells, n_genotypes); Q and F may then be arrays
of shape (n_cells,). All reductions run over the trailing axes, so a cell's
result does not depend on which batch it was computed in.

Zero total pollen and zero total frequency are legitimate states
(extinction) and propagate as zeros.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from dioecy_evo.models import ModelStructure
from dioecy_evo.types import ModelParameters


@dataclass
class GametePools:
    """Pollen (normalised) and outcrossed eggs (NOT normalised)."""
    pollen: np.ndarray       # (..., n_gametes)
    eggs: np.ndarray         # (..., n_gametes)
    total_pollen: np.ndarray # (...,) raw pollen output before normalisation


def _cellwise(value) -> np.ndarray:
    """Lift a scalar or per-cell array so it broadcasts over the genotype axis."""
    return np.asarray(value, dtype=np.float64)[..., None]


def normalize(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Divide along the last axis by its sum; all-zero rows stay zero.

    Returns:
        (normalised values, totals)
    """
    total = np.sum(values, axis=-1)
    out = np.zeros_like(values)
    np.divide(values, total[..., None], out=out, where=total[..., None] > 0)
    return out, total


def pollen_limitation(total_pollen, threshold) -> np.ndarray:
    """Fraction of ovules fertilised given the population's pollen output.

    1 when ``total_pollen >= threshold``, else ``total_pollen / threshold``
    (linear limitation). A threshold of 0 never limits.
    """
    total_pollen = np.asarray(total_pollen, dtype=np.float64)
    threshold = np.asarray(threshold, dtype=np.float64)
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(total_pollen >= threshold, 1.0, total_pollen / threshold)


def _gametes(weighted: np.ndarray, model: ModelStructure) -> np.ndarray:
    """Gamete output of genotype-weighted frequencies via segregation."""
    return np.sum(weighted[..., :, None] * model.segregation, axis=-2)


def gamete_pools(
    freqs: np.ndarray,
    model: ModelStructure,
    params: ModelParameters,
) -> GametePools:
    """Build this generation's pollen and outcrossed-egg pools.

    Args:
        freqs: (..., n_genotypes) genotype frequencies.
        model: Model variant tables.
        params: Model parameters (Q, F may be per-cell arrays).

    Returns:
        GametePools with normalised pollen and unnormalised eggs.
    """
    h, S = params.h, params.S
    Q = _cellwise(params.Q)
    F = _cellwise(params.F)

    pollen_weight = model.male + model.inconstant * (h * Q + (1.0 - h))
    raw_pollen = _gametes(freqs * pollen_weight, model)
    raw_pollen = raw_pollen * model.pollen_viability(params.ppY)
    pollen, total_pollen = normalize(raw_pollen)

    female_fert = pollen_limitation(total_pollen, params.PSatF)[..., None]
    cosex_fert = pollen_limitation(total_pollen, params.PSatC)
    cosex_fert = np.broadcast_to(cosex_fert, total_pollen.shape)[..., None]

    egg_weight = (
        model.female * female_fert
        + model.inconstant * (h * (1.0 - S) * F) * cosex_fert
    )
    eggs = _gametes(freqs * egg_weight, model)

    return GametePools(pollen=pollen, eggs=eggs, total_pollen=total_pollen)


def outcross(pools: GametePools, model: ModelStructure) -> np.ndarray:
    """Offspring genotype frequencies from random union of pollen and eggs."""
    unions = pools.pollen[..., :, None, None] * pools.eggs[..., None, :, None]
    return np.sum(unions * model.cross, axis=(-3, -2))


def self_fertilise(
    freqs: np.ndarray,
    model: ModelStructure,
    params: ModelParameters,
    selfing_table: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Offspring produced by inconstants reproducing as selfing cosexes."""
    if selfing_table is None:
        selfing_table = model.selfing_table(params.ppY)
    F = _cellwise(params.F)
    selfers = freqs * model.inconstant * (params.S * (1.0 - params.d) * params.h * F)
    return np.sum(selfers[..., :, None] * selfing_table, axis=-2)


def next_generation(
    freqs: np.ndarray,
    pools: GametePools,
    model: ModelStructure,
    params: ModelParameters,
    selfing_table: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Combine outcrossing and selfing, apply YY viability and renormalise.

    Args:
        freqs: (..., n_genotypes) parental frequencies (selfing source).
        pools: Gamete pools built from ``freqs``.
        model: Model variant tables.
        params: Model parameters.
        selfing_table: Precomputed ``model.selfing_table(params.ppY)``.

    Returns:
        (..., n_genotypes) offspring frequencies summing to 1, or all zero
        when the population went extinct.
    """
    offspring = outcross(pools, model)
    offspring = offspring + self_fertilise(freqs, model, params, selfing_table)
    offspring = offspring * model.yy_viability(params.V)
    result, _ = normalize(offspring)
    return result


def step(
    freqs: np.ndarray,
    model: ModelStructure,
    params: ModelParameters,
    selfing_table: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Advance genotype frequencies by one generation."""
    pools = gamete_pools(freqs, model, params)
    return next_generation(freqs, pools, model, params, selfing_table)
