"""Tests for dioecy_evo.models — genotype tables of both model variants."""

import numpy as np
import pytest

from dioecy_evo.models import (
    INVADER_FREQ,
    MODEL_A,
    MODEL_B,
    MODELS,
    RESIDENT_FREQ,
    get_model,
)
from dioecy_evo.types import GenotypeA, GenotypeB, InvasionMode, SexRole


# ── Table structure ───────────────────────────────────────────────────

class TestTables:
    @pytest.mark.parametrize("model", [MODEL_A, MODEL_B])
    def test_segregation_rows_sum_to_one(self, model):
        np.testing.assert_allclose(model.segregation.sum(axis=1), 1.0)

    @pytest.mark.parametrize("model", [MODEL_A, MODEL_B])
    def test_every_union_yields_one_genotype(self, model):
        np.testing.assert_array_equal(model.cross.sum(axis=2), 1.0)

    @pytest.mark.parametrize("model", [MODEL_A, MODEL_B])
    def test_cross_is_symmetric(self, model):
        np.testing.assert_array_equal(model.cross, model.cross.transpose(1, 0, 2))

    def test_shapes(self):
        assert MODEL_A.n_genotypes == 6
        assert MODEL_A.n_gametes == 3
        assert MODEL_B.n_genotypes == 9
        assert MODEL_B.n_gametes == 4
        assert MODEL_B.cross.shape == (4, 4, 9)

    def test_model_a_segregation(self):
        np.testing.assert_allclose(MODEL_A.segregation[GenotypeA.Aa_star], [0.5, 0.0, 0.5])
        np.testing.assert_allclose(MODEL_A.segregation[GenotypeA.aa], [0.0, 1.0, 0.0])

    def test_model_b_free_recombination(self):
        """A double heterozygote produces all four haplotypes equally."""
        np.testing.assert_allclose(MODEL_B.segregation[GenotypeB.Aa_Mm], 0.25)

    def test_model_a_cross(self):
        # pollen a* x egg A -> Aa*
        assert MODEL_A.cross[2, 0, GenotypeA.Aa_star] == 1.0
        # pollen a x egg a* -> aa*
        assert MODEL_A.cross[1, 2, GenotypeA.aa_star] == 1.0

    def test_model_b_cross(self):
        # pollen "a m" x egg "A M" -> Aa Mm
        assert MODEL_B.cross[3, 0, GenotypeB.Aa_Mm] == 1.0


class TestRoles:
    def test_model_a_roles(self):
        assert list(MODEL_A.roles) == [
            SexRole.FEMALE, SexRole.MALE, SexRole.INCONSTANT,
            SexRole.MALE, SexRole.INCONSTANT, SexRole.INCONSTANT,
        ]

    def test_model_b_roles(self):
        np.testing.assert_array_equal(np.nonzero(MODEL_B.female)[0], [0, 1, 2])
        np.testing.assert_array_equal(
            np.nonzero(MODEL_B.male)[0], [GenotypeB.Aa_mm, GenotypeB.aa_mm]
        )
        np.testing.assert_array_equal(
            np.nonzero(MODEL_B.inconstant)[0],
            [GenotypeB.Aa_MM, GenotypeB.Aa_Mm, GenotypeB.aa_MM, GenotypeB.aa_Mm],
        )

    @pytest.mark.parametrize("model", [MODEL_A, MODEL_B])
    def test_masks_partition_genotypes(self, model):
        np.testing.assert_array_equal(model.female + model.male + model.inconstant, 1.0)


class TestViability:
    def test_yy_genotypes_model_a(self):
        np.testing.assert_array_equal(
            MODEL_A.yy, [False, False, False, True, True, True]
        )

    def test_yy_genotypes_model_b(self):
        np.testing.assert_array_equal(np.nonzero(MODEL_B.yy)[0], [6, 7, 8])

    def test_yy_viability(self):
        np.testing.assert_allclose(
            MODEL_A.yy_viability(0.25), [1, 1, 1, 0.25, 0.25, 0.25]
        )

    def test_pollen_viability_model_a(self):
        np.testing.assert_allclose(MODEL_A.pollen_viability(0.5), [1.0, 0.5, 0.5])

    def test_pollen_viability_ignored_in_model_b(self):
        np.testing.assert_allclose(MODEL_B.pollen_viability(0.5), 1.0)


# ── Self-fertilisation ────────────────────────────────────────────────

class TestSelfingTable:
    @pytest.mark.parametrize("model", [MODEL_A, MODEL_B])
    def test_rows_sum_to_one(self, model):
        np.testing.assert_allclose(model.selfing_table(0.3).sum(axis=1), 1.0)

    def test_mendelian_without_pollen_discount(self):
        row = MODEL_A.selfing_table(1.0)[GenotypeA.Aa_star]
        np.testing.assert_allclose(row, [0.25, 0, 0.5, 0, 0, 0.25])

    def test_y_pollen_discount(self):
        """Aa* selfing: 0.5/(1+ppY) AA, 0.5 Aa*, 0.5·ppY/(1+ppY) a*a*."""
        ppY = 0.5
        row = MODEL_A.selfing_table(ppY)[GenotypeA.Aa_star]
        assert row[GenotypeA.AA] == pytest.approx(0.5 / (1 + ppY))
        assert row[GenotypeA.Aa_star] == pytest.approx(0.5)
        assert row[GenotypeA.astar_astar] == pytest.approx(0.5 * ppY / (1 + ppY))

    def test_yy_parent_unaffected_by_discount(self):
        """Both pollen types of aa* are Y-like, so ratios stay Mendelian."""
        for ppY in (1.0, 0.4, 0.0):
            row = MODEL_A.selfing_table(ppY)[GenotypeA.aa_star]
            np.testing.assert_allclose(row, [0, 0, 0, 0.25, 0.5, 0.25])

    def test_model_b_double_heterozygote(self):
        row = MODEL_B.selfing_table()[GenotypeB.Aa_Mm]
        assert row[GenotypeB.AA_MM] == pytest.approx(1 / 16)
        assert row[GenotypeB.Aa_Mm] == pytest.approx(4 / 16)
        assert row[GenotypeB.aa_mm] == pytest.approx(1 / 16)

    def test_model_b_ignores_ppy(self):
        np.testing.assert_array_equal(MODEL_B.selfing_table(0.2), MODEL_B.selfing_table(1.0))


# ── Initial conditions and aggregation ────────────────────────────────

class TestInitialConditions:
    @pytest.mark.parametrize("model", [MODEL_A, MODEL_B])
    @pytest.mark.parametrize("mode", list(InvasionMode))
    def test_sum_to_one(self, model, mode):
        assert model.initial_frequencies(mode).sum() == pytest.approx(1.0)

    def test_model_a_dioecy(self):
        f = MODEL_A.initial_frequencies(InvasionMode.DIOECY)
        assert f[GenotypeA.AA] == RESIDENT_FREQ
        assert f[GenotypeA.Aa] == RESIDENT_FREQ
        assert f[GenotypeA.Aa_star] == INVADER_FREQ

    def test_model_a_pgd(self):
        f = MODEL_A.initial_frequencies('pgd')
        assert f[GenotypeA.Aa_star] == RESIDENT_FREQ
        assert f[GenotypeA.Aa] == INVADER_FREQ

    def test_model_b_dioecy(self):
        f = MODEL_B.initial_frequencies(InvasionMode.DIOECY)
        assert f[GenotypeB.AA_mm] == RESIDENT_FREQ
        assert f[GenotypeB.Aa_mm] == RESIDENT_FREQ
        assert f[GenotypeB.Aa_Mm] == INVADER_FREQ

    def test_model_b_pgd(self):
        f = MODEL_B.initial_frequencies(InvasionMode.PGD)
        assert f[GenotypeB.AA_MM] == RESIDENT_FREQ
        assert f[GenotypeB.Aa_MM] == RESIDENT_FREQ
        assert f[GenotypeB.Aa_mm] == INVADER_FREQ

    def test_returns_copy(self):
        f = MODEL_A.initial_frequencies(InvasionMode.DIOECY)
        f[:] = 0.0
        assert MODEL_A.initial_frequencies(InvasionMode.DIOECY).sum() == pytest.approx(1.0)


class TestAggregate:
    def test_model_a_initial(self):
        female, male, inconstant = MODEL_A.aggregate(
            MODEL_A.initial_frequencies(InvasionMode.DIOECY)
        )
        assert female == pytest.approx(0.499)
        assert male == pytest.approx(0.499)
        assert inconstant == pytest.approx(0.002)

    def test_batch(self):
        freqs = np.tile(np.full(6, 1 / 6), (4, 1))
        female, male, inconstant = MODEL_A.aggregate(freqs)
        assert female.shape == (4,)
        np.testing.assert_allclose(female, 1 / 6)
        np.testing.assert_allclose(male, 2 / 6)
        np.testing.assert_allclose(inconstant, 3 / 6)

    def test_record(self):
        record = MODEL_B.as_record(MODEL_B.initial_frequencies(InvasionMode.PGD))
        assert list(record)[0] == 'AA MM'
        assert record['Aa mm'] == pytest.approx(INVADER_FREQ)


class TestRegistry:
    def test_lookup(self):
        assert get_model(1) is MODEL_A
        assert get_model(2) is MODEL_B
        assert set(MODELS) == {1, 2}

    def test_unknown_model(self):
        with pytest.raises(ValueError, match="model must be one of"):
            get_model(3)
