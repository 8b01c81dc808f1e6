"""dioecy-evo: Deterministic model of the evolution of dioecy and sex inconstancy.

Population-genetic recurrences for a plant population of females, males
and inconstant males (males that reproduce as a cosex with probability h):
  - Model 1: single sex locus with alleles A, a and a* (6 genotypes)
  - Model 2: sex locus A/a plus an unlinked inconstancy modifier M/m (9 genotypes)
  - Selfing, inbreeding depression, YY viability, Y-pollen viability and
    pollen limitation
  - Sweeps over cosex pollen (Q) and ovule (F) allocation, classifying each
    equilibrium as dioecy, pseudo-gynodioecy, subdioecy and related states

References:
  - Ehlers & Bataillon (2007), models 1 and 2
"""

__version__ = "0.1.0"
