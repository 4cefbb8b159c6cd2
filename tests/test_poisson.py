"""
Tests for the scalar Poisson problem.
"""

import os
import sys
import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from operators import build_laplacian, build_mass
from poisson import solve_scalar_poisson


def test_poisson_residual(sphere):
    sources = [0, 40]
    x = solve_scalar_poisson(sphere, sources)
    assert x.shape == (sphere.n_verts,)

    rho = np.zeros(sphere.n_verts)
    rho[sources] = 1.0
    M = build_mass(sphere)
    rho_bar = (M @ rho).sum() / sphere.total_area()
    rhs = -(M @ (rho - rho_bar))
    assert np.isclose(rhs.sum(), 0.0, atol=1e-12)
    assert np.allclose(build_laplacian(sphere) @ x, rhs, atol=1e-8)


def test_poisson_potential_has_minimum_at_source(sphere):
    x = solve_scalar_poisson(sphere, [7])
    # L is positive semidefinite, so a positive point charge makes a well
    assert np.argmin(x) == 7


def test_poisson_rejects_bad_sources(sphere):
    with pytest.raises(ValueError):
        solve_scalar_poisson(sphere, [])
    with pytest.raises(ValueError):
        solve_scalar_poisson(sphere, [sphere.n_verts])
