"""Genotype structures for the two model variants.

Each variant is described entirely by data: the genotypes and the alleles
they carry, the sex role of every genotype, and which alleles are Y-like.
From that description ``build_model`` derives the tables the shared engine
in ``dynamics`` consumes:

  - segregation:  (n_genotypes, n_gametes)  Mendelian gamete output
  - cross:        (n_gametes, n_gametes, n_genotypes)  offspring of a
                  pollen x egg union (0/1 entries)
  - y_pollen:     (n_gametes,)  pollen types discounted by ppY (model 1)
  - yy:           (n_genotypes,)  genotypes discounted by V

Model 1 has one locus with three alleles (A, a, a*). Model 2 has two
freely recombining loci (A/a sex locus, M/m modifier); its gametes are the
four haplotypes.

References:
  - Ehlers & Bataillon (2007), models 1 and 2
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Dict, Sequence, Tuple

import numpy as np

from dioecy_evo.types import GenotypeA, GenotypeB, InvasionMode, SexRole


# Starting frequency of the invading class
INVADER_FREQ: float = 0.002
RESIDENT_FREQ: float = 0.499


@dataclass(eq=False)
class ModelStructure:
    """Tables describing one model variant. Treated as read-only."""
    number: int
    genotype_labels: Tuple[str, ...]
    gamete_labels: Tuple[str, ...]
    roles: np.ndarray          # (n_genotypes,) int8 SexRole codes
    segregation: np.ndarray    # (n_genotypes, n_gametes)
    cross: np.ndarray          # (n_gametes, n_gametes, n_genotypes)
    y_pollen: np.ndarray       # (n_gametes,) bool
    yy: np.ndarray             # (n_genotypes,) bool
    uses_ppY: bool
    initial: Dict[InvasionMode, np.ndarray] = field(default_factory=dict)

    @property
    def n_genotypes(self) -> int:
        return len(self.genotype_labels)

    @property
    def n_gametes(self) -> int:
        return len(self.gamete_labels)

    @property
    def female(self) -> np.ndarray:
        return (self.roles == SexRole.FEMALE).astype(np.float64)

    @property
    def male(self) -> np.ndarray:
        return (self.roles == SexRole.MALE).astype(np.float64)

    @property
    def inconstant(self) -> np.ndarray:
        return (self.roles == SexRole.INCONSTANT).astype(np.float64)

    def pollen_viability(self, ppY: float) -> np.ndarray:
        """Per-pollen-type viability factor."""
        if not self.uses_ppY:
            return np.ones(self.n_gametes)
        return np.where(self.y_pollen, ppY, 1.0)

    def yy_viability(self, V: float) -> np.ndarray:
        """Per-genotype viability factor applied after reproduction."""
        return np.where(self.yy, V, 1.0)

    def selfing_table(self, ppY: float = 1.0) -> np.ndarray:
        """Offspring distribution of a self-cross, one row per parent genotype.

        Eggs segregate in Mendelian proportions. On the pollen side the
        parent's pollen types compete after the ppY viability discount, so
        a parent carrying one X-like and one Y-like allele sires X-bearing
        offspring in proportion 1/(1+ppY). Parents whose pollen is all
        discounted equally keep Mendelian ratios.
        """
        viability = self.pollen_viability(ppY)
        table = np.zeros((self.n_genotypes, self.n_genotypes))
        for g in range(self.n_genotypes):
            eggs = self.segregation[g]
            pollen = self.segregation[g] * viability
            total = pollen.sum()
            if total > 0:
                pollen = pollen / total
            else:
                pollen = self.segregation[g]
            table[g] = np.einsum('i,j,ijk->k', pollen, eggs, self.cross)
        return table

    def initial_frequencies(self, mode: InvasionMode) -> np.ndarray:
        """Fresh copy of the starting frequency vector for ``mode``."""
        return self.initial[InvasionMode(mode)].copy()

    def aggregate(self, freqs: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Sum genotype frequencies into (female, male, inconstant)."""
        freqs = np.asarray(freqs, dtype=np.float64)
        return (
            np.sum(freqs * self.female, axis=-1),
            np.sum(freqs * self.male, axis=-1),
            np.sum(freqs * self.inconstant, axis=-1),
        )

    def as_record(self, freqs: np.ndarray) -> Dict[str, float]:
        """Label -> frequency mapping for a single frequency vector."""
        return {
            label: float(value)
            for label, value in zip(self.genotype_labels, np.asarray(freqs))
        }


# ═══════════════════════════════════════════════════════════════════════
# TABLE CONSTRUCTION
# ═══════════════════════════════════════════════════════════════════════


def _locus_segregation(pair: Tuple[int, int], n_alleles: int) -> np.ndarray:
    """Gamete (allele) frequencies produced by one diploid locus."""
    out = np.zeros(n_alleles)
    out[pair[0]] += 0.5
    out[pair[1]] += 0.5
    return out


def build_model(
    number: int,
    genotype_labels: Sequence[str],
    loci: Sequence[Sequence[Tuple[int, int]]],
    allele_counts: Sequence[int],
    gamete_labels: Sequence[str],
    roles: Sequence[SexRole],
    y_alleles: Sequence[int],
    uses_ppY: bool,
    initial: Dict[InvasionMode, Dict[int, float]],
) -> ModelStructure:
    """Derive the segregation and cross tables from allele composition.

    Args:
        number: Model number (1 or 2).
        genotype_labels: Display label of each genotype.
        loci: Per genotype, one sorted allele-index pair per locus.
        allele_counts: Number of alleles at each locus.
        gamete_labels: Display label of each haplotype, in the order of
            ``itertools.product`` over the per-locus allele indices.
        roles: SexRole of each genotype.
        y_alleles: Allele indices at the sex locus (locus 0) that are Y-like.
        uses_ppY: Whether Y-pollen viability applies to this model.
        initial: Starting frequencies per invasion mode as {genotype: freq}.
    """
    n_genotypes = len(genotype_labels)
    haplotypes = list(itertools.product(*(range(n) for n in allele_counts)))
    n_gametes = len(haplotypes)
    assert n_gametes == len(gamete_labels)

    index_of = {tuple(g): i for i, g in enumerate(loci)}

    segregation = np.zeros((n_genotypes, n_gametes))
    for g, pairs in enumerate(loci):
        per_locus = [
            _locus_segregation(pair, n) for pair, n in zip(pairs, allele_counts)
        ]
        for h_idx, haplotype in enumerate(haplotypes):
            segregation[g, h_idx] = np.prod(
                [per_locus[l][allele] for l, allele in enumerate(haplotype)]
            )

    cross = np.zeros((n_gametes, n_gametes, n_genotypes))
    for i, pollen in enumerate(haplotypes):
        for j, egg in enumerate(haplotypes):
            key = tuple(tuple(sorted((p, e))) for p, e in zip(pollen, egg))
            cross[i, j, index_of[key]] = 1.0

    y_set = set(y_alleles)
    y_pollen = np.array([hap[0] in y_set for hap in haplotypes])
    yy = np.array([pairs[0][0] in y_set and pairs[0][1] in y_set for pairs in loci])

    starts = {}
    for mode, freqs in initial.items():
        vector = np.zeros(n_genotypes)
        for g, value in freqs.items():
            vector[g] = value
        starts[mode] = vector

    return ModelStructure(
        number=number,
        genotype_labels=tuple(genotype_labels),
        gamete_labels=tuple(gamete_labels),
        roles=np.array(roles, dtype=np.int8),
        segregation=segregation,
        cross=cross,
        y_pollen=y_pollen,
        yy=yy,
        uses_ppY=uses_ppY,
        initial=starts,
    )


# ═══════════════════════════════════════════════════════════════════════
# THE TWO VARIANTS
# ═══════════════════════════════════════════════════════════════════════

# Model 1 alleles: 0 = A (X-like), 1 = a (Y), 2 = a* (inconstant Y)
MODEL_A = build_model(
    number=1,
    genotype_labels=('AA', 'Aa', 'Aa*', 'aa', 'aa*', 'a*a*'),
    loci=[
        ((0, 0),),
        ((0, 1),),
        ((0, 2),),
        ((1, 1),),
        ((1, 2),),
        ((2, 2),),
    ],
    allele_counts=(3,),
    gamete_labels=('A', 'a', 'a*'),
    roles=(
        SexRole.FEMALE,
        SexRole.MALE,
        SexRole.INCONSTANT,
        SexRole.MALE,
        SexRole.INCONSTANT,
        SexRole.INCONSTANT,
    ),
    y_alleles=(1, 2),
    uses_ppY=True,
    initial={
        InvasionMode.DIOECY: {
            GenotypeA.AA: RESIDENT_FREQ,
            GenotypeA.Aa: RESIDENT_FREQ,
            GenotypeA.Aa_star: INVADER_FREQ,
        },
        InvasionMode.PGD: {
            GenotypeA.AA: RESIDENT_FREQ,
            GenotypeA.Aa: INVADER_FREQ,
            GenotypeA.Aa_star: RESIDENT_FREQ,
        },
    },
)

# Model 2 alleles: sex locus 0 = A, 1 = a; modifier locus 0 = M, 1 = m
MODEL_B = build_model(
    number=2,
    genotype_labels=(
        'AA MM', 'AA Mm', 'AA mm',
        'Aa MM', 'Aa Mm', 'Aa mm',
        'aa MM', 'aa Mm', 'aa mm',
    ),
    loci=[
        (sex, mod)
        for sex in ((0, 0), (0, 1), (1, 1))
        for mod in ((0, 0), (0, 1), (1, 1))
    ],
    allele_counts=(2, 2),
    gamete_labels=('A M', 'A m', 'a M', 'a m'),
    roles=(
        SexRole.FEMALE, SexRole.FEMALE, SexRole.FEMALE,
        SexRole.INCONSTANT, SexRole.INCONSTANT, SexRole.MALE,
        SexRole.INCONSTANT, SexRole.INCONSTANT, SexRole.MALE,
    ),
    y_alleles=(1,),
    uses_ppY=False,
    initial={
        InvasionMode.DIOECY: {
            GenotypeB.AA_mm: RESIDENT_FREQ,
            GenotypeB.Aa_mm: RESIDENT_FREQ,
            GenotypeB.Aa_Mm: INVADER_FREQ,
        },
        InvasionMode.PGD: {
            GenotypeB.AA_MM: RESIDENT_FREQ,
            GenotypeB.Aa_MM: RESIDENT_FREQ,
            GenotypeB.Aa_mm: INVADER_FREQ,
        },
    },
)

MODELS: Dict[int, ModelStructure] = {1: MODEL_A, 2: MODEL_B}


def get_model(number: int) -> ModelStructure:
    """Look up a model variant by number (1 or 2)."""
    try:
        return MODELS[int(number)]
    except KeyError:
        raise ValueError(
            f"model must be one of {sorted(MODELS)}, got {number!r}"
        ) from None
