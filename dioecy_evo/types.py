"""Core data types for dioecy-evo.

This module is the SINGLE SOURCE OF TRUTH for:
  - EquilibriumState, SexRole, InvasionMode enumerations
  - Genotype index enumerations for both model variants (GenotypeA, GenotypeB)
  - ModelParameters: the immutable parameter value passed to every component

All modules import these types from here.

References:
  - Ehlers & Bataillon (2007), models 1 and 2
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Union

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class EquilibriumState(IntEnum):
    """Mating-system category of a population at (assumed) equilibrium.

    Integer values are the codes stored in a classification map.
    """
    NONE = 0   # Undetermined (population extinct or degenerate)
    PGD  = 1   # Pseudo-gynodioecy: females + inconstants
    SSD  = 2   # Females, males and inconstants all present
    DIO  = 3   # Pure dioecy: females + males
    PAD  = 4   # Males + inconstants, no female-only class
    INC  = 5   # Inconstants only

    @property
    def label(self) -> str:
        """Name used in text reports ('???' for an undetermined state)."""
        return '???' if self is EquilibriumState.NONE else self.name


class SexRole(IntEnum):
    """Functional sex class of a genotype."""
    FEMALE     = 0   # Ovules only
    MALE       = 1   # Pollen only
    INCONSTANT = 2   # Male that reproduces as a cosex with probability h


class InvasionMode(str, Enum):
    """Which initial population a sweep starts from."""
    DIOECY = 'dioecy'   # Near-pure dioecy; test whether inconstants invade
    PGD    = 'pgd'      # Near-pure pseudo-gynodioecy; test whether males invade

    @property
    def start_label(self) -> str:
        return 'PGD' if self is InvasionMode.PGD else 'DIO'


# ═══════════════════════════════════════════════════════════════════════
# GENOTYPE INDICES
# ═══════════════════════════════════════════════════════════════════════

class GenotypeA(IntEnum):
    """Model 1: single sex locus with alleles A, a (Y-like) and a* (inconstant Y)."""
    AA          = 0   # Female
    Aa          = 1   # Male
    Aa_star     = 2   # Inconstant
    aa          = 3   # Male (YY)
    aa_star     = 4   # Inconstant (YY)
    astar_astar = 5   # Inconstant (YY)


class GenotypeB(IntEnum):
    """Model 2: sex locus (A/a) x unlinked modifier locus (M/m).

    AA plants are female; a-carriers are inconstant when they carry M,
    pure male otherwise.
    """
    AA_MM = 0
    AA_Mm = 1
    AA_mm = 2
    Aa_MM = 3
    Aa_Mm = 4
    Aa_mm = 5
    aa_MM = 6
    aa_Mm = 7
    aa_mm = 8


# ═══════════════════════════════════════════════════════════════════════
# MODEL PARAMETERS
# ═══════════════════════════════════════════════════════════════════════

Scalar = Union[float, np.ndarray]


@dataclass(frozen=True)
class ModelParameters:
    """Parameters of one simulation.

    Q and F may be arrays (one entry per grid cell) when a whole block of
    the parameter grid is iterated at once; every other field is a scalar
    fixed for the run.
    """
    h: float = 0.5       # Probability that an inconstant reproduces as a cosex
    S: float = 0.0       # Cosex selfing rate
    d: float = 0.0       # Inbreeding depression applied to selfed offspring
    V: float = 1.0       # Viability of YY individuals relative to XY
    PSatF: float = 0.0   # Pollen output saturating a female's ovules (0 = no limitation)
    ppY: float = 1.0     # Viability of Y pollen (model 1 only)
    Q: Scalar = 1.0      # Cosex pollen production relative to a male
    F: Scalar = 1.0      # Cosex ovule production relative to a female

    @property
    def PSatC(self) -> Scalar:
        """Pollen output saturating a cosex's outcrossed ovules."""
        return self.PSatF * self.F * (1.0 - self.S)

    def at(self, Q: Scalar, F: Scalar) -> 'ModelParameters':
        """Copy with the grid-point values Q and F replaced."""
        return replace(self, Q=Q, F=F)


def k_to_q(K: Scalar) -> Scalar:
    """Reciprocal reparameterisation: Q = 1 / (1 + K) (same map for k -> F)."""
    return 1.0 / (1.0 + K)


def q_to_k(Q: Scalar) -> Scalar:
    """Inverse of ``k_to_q``: K = 1/Q - 1."""
    return 1.0 / Q - 1.0
