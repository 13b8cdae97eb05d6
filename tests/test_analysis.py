"""Tests for spectral analysis and plotting."""

import matplotlib.pyplot as plt
import numpy as np
import pytest

from filmstack.analysis import SpectralAnalyzer
from filmstack.errors import InvalidArgumentError
from filmstack.spectrum import SpectrumPoint


@pytest.fixture
def analyzer():
    return SpectralAnalyzer(
        [
            SpectrumPoint(400.0, 0.9, 0.08),
            SpectrumPoint(500.0, 0.95, 0.05),
            SpectrumPoint(600.0, 0.97, 0.03),
        ]
    )


class TestSpectralAnalyzer:
    """Test tabular views and plots of a spectrum."""

    def test_to_dataframe(self, analyzer):
        df = analyzer.to_dataframe()
        assert list(df.columns) == ["wavelength_nm", "transmission", "reflection"]
        assert list(df["wavelength_nm"]) == [400.0, 500.0, 600.0]
        assert list(df["reflection"]) == [0.08, 0.05, 0.03]

    def test_empty_dataframe_has_columns(self):
        df = SpectralAnalyzer([]).to_dataframe()
        assert df.empty
        assert list(df.columns) == ["wavelength_nm", "transmission", "reflection"]

    def test_loss(self, analyzer):
        np.testing.assert_allclose(analyzer.loss, [0.02, 0.0, 0.0], atol=1e-12)

    def test_rms_error(self, analyzer):
        assert analyzer.rms_error([0.08, 0.05, 0.03]) == pytest.approx(0.0)
        assert analyzer.rms_error([0.0, 0.0, 0.0]) == pytest.approx(
            np.sqrt((0.08**2 + 0.05**2 + 0.03**2) / 3)
        )

    def test_rms_error_length_mismatch(self, analyzer):
        with pytest.raises(InvalidArgumentError, match="must match"):
            analyzer.rms_error([0.0])

    def test_plot_reflection(self, analyzer):
        fig, ax = analyzer.plot()
        assert fig is not None
        assert len(ax.lines) == 1
        assert ax.get_xlabel() == "$\\lambda$ (nm)"
        plt.close(fig)

    def test_plot_multiple_on_existing_axes(self, analyzer):
        fig, ax = plt.subplots()
        out_fig, out_ax = analyzer.plot(["R", "T", "A"], ax=ax, target_reflection=[0, 0, 0])
        assert out_fig is fig
        assert out_ax is ax
        assert len(ax.lines) == 4
        plt.close(fig)

    def test_plot_invalid_quantity(self, analyzer):
        with pytest.raises(ValueError, match="to_plot"):
            analyzer.plot("X")
        plt.close("all")

    def test_plot_empty(self):
        with pytest.raises(InvalidArgumentError):
            SpectralAnalyzer([]).plot()
