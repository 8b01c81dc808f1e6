"""Tests for dioecy_evo.types — enums, genotype indices and parameters."""

import dataclasses

import numpy as np
import pytest

from dioecy_evo.types import (
    EquilibriumState,
    GenotypeA,
    GenotypeB,
    InvasionMode,
    ModelParameters,
    SexRole,
    k_to_q,
    q_to_k,
)


# ── Enum tests ────────────────────────────────────────────────────────

class TestEquilibriumState:
    def test_values(self):
        assert EquilibriumState.NONE == 0
        assert EquilibriumState.PGD == 1
        assert EquilibriumState.SSD == 2
        assert EquilibriumState.DIO == 3
        assert EquilibriumState.PAD == 4
        assert EquilibriumState.INC == 5

    def test_count(self):
        assert len(EquilibriumState) == 6

    def test_labels(self):
        assert EquilibriumState.DIO.label == 'DIO'
        assert EquilibriumState.NONE.label == '???'

    def test_integer_compatible(self):
        """States can be stored in int8 maps and used as indices."""
        arr = np.zeros(6, dtype=np.int8)
        arr[EquilibriumState.INC] = EquilibriumState.INC
        assert arr[5] == 5


class TestInvasionMode:
    def test_from_string(self):
        assert InvasionMode('dioecy') is InvasionMode.DIOECY
        assert InvasionMode('pgd') is InvasionMode.PGD

    def test_start_label(self):
        assert InvasionMode.DIOECY.start_label == 'DIO'
        assert InvasionMode.PGD.start_label == 'PGD'

    def test_invalid(self):
        with pytest.raises(ValueError):
            InvasionMode('gynodioecy')


class TestGenotypeIndices:
    def test_model_a_count(self):
        assert len(GenotypeA) == 6
        assert GenotypeA.astar_astar == 5

    def test_model_b_count(self):
        assert len(GenotypeB) == 9
        assert GenotypeB.Aa_mm == 5
        assert GenotypeB.aa_mm == 8

    def test_roles(self):
        assert len(SexRole) == 3


# ── ModelParameters tests ─────────────────────────────────────────────

class TestModelParameters:
    def test_defaults(self):
        p = ModelParameters()
        assert p.h == 0.5
        assert p.S == 0.0
        assert p.V == 1.0
        assert p.ppY == 1.0

    def test_frozen(self):
        p = ModelParameters()
        with pytest.raises(dataclasses.FrozenInstanceError):
            p.h = 0.1

    def test_psatc(self):
        p = ModelParameters(PSatF=2.0, F=0.5, S=0.25)
        assert p.PSatC == pytest.approx(0.75)

    def test_psatc_zero_without_limitation(self):
        assert ModelParameters(PSatF=0.0, F=0.7).PSatC == 0.0

    def test_at_replaces_only_q_and_f(self):
        p = ModelParameters(h=0.3, S=0.2)
        q = np.array([0.1, 0.2])
        p2 = p.at(Q=q, F=0.4)
        assert p2.h == 0.3 and p2.S == 0.2
        assert p2.F == 0.4
        np.testing.assert_array_equal(p2.Q, q)
        assert p.Q == 1.0


class TestReparameterisation:
    def test_k_to_q(self):
        assert k_to_q(0.0) == 1.0
        assert k_to_q(1.0) == 0.5
        assert k_to_q(4.0) == pytest.approx(0.2)

    def test_round_trip(self):
        for Q in (0.2, 0.5, 0.75, 1.0):
            assert k_to_q(q_to_k(Q)) == pytest.approx(Q)

    def test_k_round_trip(self):
        K = np.linspace(0.0, 10.0, 41)
        np.testing.assert_allclose(q_to_k(k_to_q(K)), K, atol=1e-12)

    def test_arrays(self):
        K = np.array([0.0, 1.0, 3.0])
        np.testing.assert_allclose(k_to_q(K), [1.0, 0.5, 0.25])
