"""Tests for dioecy_evo.utils."""

from dioecy_evo.utils import timer


class TestTimer:
    def test_records_elapsed(self):
        with timer("x", verbose=False) as t:
            sum(range(1000))
        assert t['elapsed'] >= 0.0

    def test_prints_label(self, capsys):
        with timer("sweep"):
            pass
        assert capsys.readouterr().out.startswith("[sweep] ")

    def test_silent(self, capsys):
        with timer("sweep", verbose=False):
            pass
        assert capsys.readouterr().out == ""
