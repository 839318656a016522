"""Tests for the SDP4 lunar-solar terms and resonance integrator."""

import math

import jax
import jax.numpy as jnp
import pytest
from sgp4.model import WGS72 as SGP4_WGS72
from sgp4.model import Satrec

from orbitjax.sgp4 import (
    MeanElements,
    Resonance,
    deep_space_periodics,
    deep_space_secular,
    integrate_resonance,
    sgp4_init,
    sgp4_propagate,
)
from orbitjax.sgp4._constants import THDT

MOLNIYA_2_14_L1 = "1 08195U 75081A   06176.33215444  .00000099  00000-0  11873-3 0   813"
MOLNIYA_2_14_L2 = "2 08195  64.1586 279.0717 6877146 264.7651  20.2257  2.00491383225656"

ITALSAT_2_L1 = "1 24208U 96044A   06177.04061740 -.00000094  00000-0  10000-3 0  1600"
ITALSAT_2_L2 = "2 24208   3.8536  80.0121 0026640 311.0977  48.3000  1.00778054 36119"

VELA_5A_L1 = "1 04965U 69046F   06175.83186726  .00000094  00000-0  10000-3 0  4711"
VELA_5A_L2 = "2 04965  32.9048 138.7680 6088834 148.5862 269.3268  2.47283741134637"


def _from_tle(line1: str, line2: str) -> tuple[MeanElements, Satrec]:
    sat = Satrec.twoline2rv(line1, line2, SGP4_WGS72)
    elements = MeanElements(
        epoch=sat.jdsatepoch + sat.jdsatepochF,
        n0=sat.no_kozai,
        e0=sat.ecco,
        i0=sat.inclo,
        raan0=sat.nodeo,
        argp0=sat.argpo,
        M0=sat.mo,
        bstar=sat.bstar,
    )
    return elements, sat


def _integrate(state, dt: float):
    return integrate_resonance(state.deep_space, state.n0_unkozai, state.argp0, state.argp_dot, dt)


class TestResonanceIntegrator:
    @pytest.mark.parametrize("dt, atime", [(0.0, 0.0), (719.0, 0.0), (720.0, 720.0), (3000.0, 2880.0), (-1500.0, -1440.0)])
    def test_step_count(self, dt: float, atime: float) -> None:
        elements, _ = _from_tle(ITALSAT_2_L1, ITALSAT_2_L2)
        integrator = _integrate(sgp4_init(elements), dt)
        assert float(integrator.atime) == atime

    @staticmethod
    def _step(ckpt, delt: float) -> tuple[float, float]:
        xli = ckpt.xli + delt * (ckpt.xldot + delt * ckpt.xndot / 2.0)
        xni = ckpt.xni + delt * (ckpt.xndot + delt * ckpt.xnddt / 2.0)
        return float(xli), float(xni)

    @pytest.mark.parametrize("lines", [(ITALSAT_2_L1, ITALSAT_2_L2), (MOLNIYA_2_14_L1, MOLNIYA_2_14_L2)])
    @pytest.mark.parametrize("dt, delt", [(1000.0, 720.0), (-1000.0, -720.0)])
    def test_first_step_from_epoch(self, lines, dt: float, delt: float) -> None:
        elements, _ = _from_tle(*lines)
        state = sgp4_init(elements)
        xli, xni = self._step(state.deep_space.integrator, delt)
        integrator = _integrate(state, dt)
        assert float(integrator.atime) == delt
        assert float(integrator.xli) == pytest.approx(xli, abs=1e-12)
        assert float(integrator.xni) == pytest.approx(xni, rel=1e-14)

    @pytest.mark.parametrize("lines", [(ITALSAT_2_L1, ITALSAT_2_L2), (MOLNIYA_2_14_L1, MOLNIYA_2_14_L2)])
    def test_second_step_uses_checkpoint_rates(self, lines) -> None:
        elements, _ = _from_tle(*lines)
        state = sgp4_init(elements)
        first = _integrate(state, 1000.0)
        xli, xni = self._step(first, 720.0)
        second = _integrate(state, 1500.0)
        assert float(second.atime) == 1440.0
        assert float(second.xli) == pytest.approx(xli, abs=1e-12)
        assert float(second.xni) == pytest.approx(xni, rel=1e-14)

    @pytest.mark.parametrize("lines", [(ITALSAT_2_L1, ITALSAT_2_L2), (MOLNIYA_2_14_L1, MOLNIYA_2_14_L2)])
    def test_seed_matches_reference(self, lines) -> None:
        elements, sat = _from_tle(*lines)
        integrator = sgp4_init(elements).deep_space.integrator
        assert float(integrator.xli) == pytest.approx(sat.xlamo, abs=1e-7)
        assert float(integrator.xni) == pytest.approx(sat.no_unkozai, rel=1e-13)

    @pytest.mark.parametrize("lines", [(ITALSAT_2_L1, ITALSAT_2_L2), (MOLNIYA_2_14_L1, MOLNIYA_2_14_L2)])
    def test_propagated_checkpoint(self, lines) -> None:
        elements, _ = _from_tle(*lines)
        state = sgp4_init(elements)
        for dt, atime in ((2000.0, 1440.0), (7000.0, 6480.0), (1000.0, 720.0), (-3000.0, -2880.0)):
            _, _, state = sgp4_propagate(state, dt)
            assert float(state.deep_space.integrator.atime) == atime

    def test_resume_matches_fresh_start(self) -> None:
        elements, _ = _from_tle(MOLNIYA_2_14_L1, MOLNIYA_2_14_L2)
        fresh = sgp4_init(elements)
        state = fresh
        for dt in (1500.0, 5000.0, 7200.0, 300.0, -2000.0, -500.0, 9000.0):
            r, v, state = sgp4_propagate(state, dt)
            r_fresh, v_fresh, _ = sgp4_propagate(fresh, dt)
            assert jnp.allclose(r, r_fresh, atol=1e-9)
            assert jnp.allclose(v, v_fresh, atol=1e-12)

    def test_resume_continues_from_checkpoint(self) -> None:
        elements, _ = _from_tle(ITALSAT_2_L1, ITALSAT_2_L2)
        _, _, state = sgp4_propagate(sgp4_init(elements), 1500.0)
        assert float(state.deep_space.integrator.atime) == 1440.0
        integrator = _integrate(state, 5000.0)
        assert float(integrator.atime) == 4320.0

    def test_restart_when_closer_to_epoch(self) -> None:
        elements, _ = _from_tle(ITALSAT_2_L1, ITALSAT_2_L2)
        _, _, state = sgp4_propagate(sgp4_init(elements), 5000.0)
        integrator = _integrate(state, 300.0)
        assert float(integrator.atime) == 0.0
        assert float(integrator.xli) == float(state.deep_space.terms.xlamo)

    def test_restart_when_crossing_epoch(self) -> None:
        elements, _ = _from_tle(ITALSAT_2_L1, ITALSAT_2_L2)
        _, _, state = sgp4_propagate(sgp4_init(elements), 5000.0)
        integrator = _integrate(state, -2000.0)
        assert float(integrator.atime) == -1440.0

    def test_jit(self) -> None:
        elements, _ = _from_tle(MOLNIYA_2_14_L1, MOLNIYA_2_14_L2)
        state = sgp4_init(elements)
        integrator = jax.jit(_integrate)(state, 3000.0)
        eager = _integrate(state, 3000.0)
        assert float(integrator.atime) == float(eager.atime)
        assert float(integrator.xli) == pytest.approx(float(eager.xli), abs=1e-12)


class TestDeepSpaceSecular:
    def _secular(self, state, dt: float):
        M = state.M0 + state.M_dot * dt
        raan = state.raan0 + state.raan_dot * dt
        argp = state.argp0 + state.argp_dot * dt
        return deep_space_secular(
            state.deep_space, state.n0_unkozai, state.e0, state.i0, state.argp0, state.argp_dot, raan, argp, M, dt
        )

    def test_non_resonant_keeps_mean_motion(self) -> None:
        elements, _ = _from_tle(VELA_5A_L1, VELA_5A_L2)
        state = sgp4_init(elements)
        assert state.deep_space.resonance == Resonance.NONE
        n, e, i, _, _, _, ds = self._secular(state, 1440.0)
        assert float(n) == float(state.n0_unkozai)
        assert float(e) == pytest.approx(float(state.e0 + state.deep_space.e_rate * 1440.0), abs=1e-15)
        assert float(i) == pytest.approx(float(state.i0 + state.deep_space.i_rate * 1440.0), abs=1e-15)
        assert ds is state.deep_space

    def _reconstructed_longitude(self, state, ds, dt: float):
        integrator = ds.integrator
        ft = dt - integrator.atime
        xl = integrator.xli + ft * (integrator.xldot + ft * integrator.xndot / 2.0)
        theta = math.fmod(float(state.deep_space.gmst) + THDT * dt, 2.0 * math.pi)
        return float(xl), theta

    def test_synchronous_mean_anomaly(self) -> None:
        elements, _ = _from_tle(ITALSAT_2_L1, ITALSAT_2_L2)
        state = sgp4_init(elements)
        dt = 2500.0
        _, _, _, raan, argp, M, ds = self._secular(state, dt)
        xl, theta = self._reconstructed_longitude(state, ds, dt)
        assert float(M) == pytest.approx(xl - float(raan) - float(argp) + theta, abs=1e-10)

    def test_half_day_mean_anomaly(self) -> None:
        elements, _ = _from_tle(MOLNIYA_2_14_L1, MOLNIYA_2_14_L2)
        state = sgp4_init(elements)
        dt = 2500.0
        _, _, _, raan, _, M, ds = self._secular(state, dt)
        xl, theta = self._reconstructed_longitude(state, ds, dt)
        assert float(M) == pytest.approx(xl - 2.0 * float(raan) + 2.0 * theta, abs=1e-10)


class TestDeepSpacePeriodics:
    @pytest.fixture()
    def ds(self):
        elements, _ = _from_tle(ITALSAT_2_L1, ITALSAT_2_L2)
        return sgp4_init(elements).deep_space

    def test_forms_agree_at_switch(self, ds) -> None:
        e_lo, i_lo, raan_lo, _, M_lo = deep_space_periodics(ds, 100.0, 0.01, 0.2 - 1e-7, 1.0, 2.0, 3.0)
        e_hi, i_hi, raan_hi, _, M_hi = deep_space_periodics(ds, 100.0, 0.01, 0.2 + 1e-7, 1.0, 2.0, 3.0)
        assert float(e_lo) == float(e_hi)
        assert float(i_lo) == pytest.approx(float(i_hi), abs=1e-6)
        assert float(M_lo) == float(M_hi)
        assert float(raan_lo) == pytest.approx(float(raan_hi), abs=1e-5)

    def test_zero_inclination_is_finite(self, ds) -> None:
        e, i, raan, argp, M = deep_space_periodics(ds, 100.0, 0.01, 0.0, 1.0, 2.0, 3.0)
        for value in (e, i, raan, argp, M):
            assert jnp.isfinite(value)

    def test_negative_inclination_is_flipped(self, ds) -> None:
        _, i, _, _, _ = deep_space_periodics(ds, 100.0, 0.01, -0.05, 1.0, 2.0, 3.0)
        assert float(i) > 0.0
        assert float(i) == pytest.approx(0.05, abs=1e-3)

