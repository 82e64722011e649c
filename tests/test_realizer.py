import numpy as np
import pytest
from scipy import signal

from bandxform import FS2, Band, transform
from prototypes import AT_INFINITY, Method, ZPK, design_prototype
from realizer import DigitalCoefficients, bilinear, poly_from_roots, to_digital
from zpk_support import assert_same_roots


class TestPolyFromRoots:
    def test_no_roots(self):
        np.testing.assert_array_equal(poly_from_roots([]), [1.0])

    def test_real_roots(self):
        np.testing.assert_allclose(poly_from_roots([1.0, 2.0]), [1.0, -3.0, 2.0])

    def test_conjugate_pair_collapses_to_real(self):
        c = poly_from_roots([1 + 1j, 1 - 1j])
        assert c.dtype == np.float64
        np.testing.assert_allclose(c, [1.0, -2.0, 2.0])

    def test_matches_numpy_poly(self):
        roots = [-0.5, 0.3 + 0.4j, 0.3 - 0.4j, -0.1 + 0.9j, -0.1 - 0.9j]
        np.testing.assert_allclose(poly_from_roots(roots), np.real(np.poly(roots)), atol=1e-14)

    def test_unpaired_complex_root_fails_loudly(self):
        with pytest.raises(AssertionError):
            poly_from_roots([0.5j])


class TestBilinear:
    def test_pads_missing_zeros_at_nyquist(self):
        dz = bilinear(ZPK((), (-1 + 0j, -2 + 0j), 3.0))
        assert len(dz.zeros) == 2
        np.testing.assert_allclose(dz.zeros, [-1.0, -1.0])

    def test_drops_zero_at_infinity(self):
        analog = ZPK((2j, -2j, AT_INFINITY), (-1 + 0j, -0.5 + 1j, -0.5 - 1j), 1.0)
        dz = bilinear(analog)
        assert AT_INFINITY not in dz.zeros
        assert len(dz.zeros) == 3
        assert dz.zeros[-1] == -1

    @pytest.mark.parametrize("band,wn", [(Band.LOW, 0.3), (Band.HIGH, 0.3), (Band.BANDPASS, (0.2, 0.5)),
                                         (Band.BANDSTOP, (0.2, 0.5))])
    def test_matches_scipy(self, band, wn):
        analog = transform(design_prototype(3, Method.CHEBYSHEV2, attenuation_db=30.0), band, wn)
        z_ref, p_ref, k_ref = signal.bilinear_zpk(analog.finite_zeros, analog.pole_array, analog.gain, FS2 / 2.0)
        dz = bilinear(analog)
        assert_same_roots(dz.zeros, z_ref)
        assert_same_roots(dz.pole_array, p_ref)
        assert dz.gain == pytest.approx(k_ref, rel=1e-10)

    def test_stable_analog_poles_land_inside_unit_circle(self):
        analog = transform(design_prototype(6, Method.CHEBYSHEV1, ripple_db=0.5), Band.BANDPASS, (0.05, 0.9))
        assert np.all(np.abs(bilinear(analog).pole_array) < 1.0)


class TestToDigital:
    def test_first_order_closed_form(self):
        wn = 0.3
        K = np.tan(np.pi * wn / 2)
        coeffs = to_digital(transform(design_prototype(1, Method.BUTTERWORTH), Band.LOW, wn))
        np.testing.assert_allclose(coeffs.b, [K / (1 + K), K / (1 + K)], rtol=1e-12)
        np.testing.assert_allclose(coeffs.a, [1.0, (K - 1) / (K + 1)], rtol=1e-12)

    def test_leading_denominator_is_one(self):
        coeffs = to_digital(transform(design_prototype(5, Method.CHEBYSHEV1, ripple_db=1.0), Band.HIGH, 0.6))
        assert coeffs.a[0] == 1.0
        assert len(coeffs.a) == len(coeffs.b) == 6


class TestDigitalCoefficients:
    def test_arrays_are_read_only(self):
        c = DigitalCoefficients([0.5, 0.5], [1.0, 0.0])
        with pytest.raises(ValueError):
            c.b[0] = 1.0

    def test_caller_list_is_copied(self):
        b = [0.5, 0.5]
        c = DigitalCoefficients(b, [1.0, 0.0])
        b[0] = 9.0
        assert c.b[0] == 0.5

    def test_as_dict(self):
        c = DigitalCoefficients([0.5, 0.5], [1.0, -0.1])
        assert c.as_dict() == {"b": [0.5, 0.5], "a": [1.0, -0.1]}
        assert c.order == 1
