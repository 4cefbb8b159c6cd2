"""
Tests for the sparse linear solve service.
"""

import os
import sys
import numpy as np
import pytest
import scipy.sparse as sp

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from operators import build_laplacian, build_mass
from solvers import (
    LinearSolveError,
    NotPositiveDefiniteError,
    SingularMatrixError,
    CholeskySolver,
    LUSolver,
    cholesky,
    lu,
    smallest_eigen_positive_definite,
)


def random_spd(n, seed=0):
    rng = np.random.default_rng(seed)
    M = rng.standard_normal((n, n))
    return sp.csc_matrix(M @ M.T + n * np.eye(n))


def test_cholesky_solves_spd_system():
    A = random_spd(20)
    b = np.arange(20, dtype=float)
    x = cholesky(A, b)
    assert np.allclose(A @ x, b)


def test_cholesky_solver_reuses_factorization(sphere):
    L = build_laplacian(sphere)
    solver = CholeskySolver(L)
    rng = np.random.default_rng(1)
    for _ in range(3):
        b = rng.standard_normal(sphere.n_verts)
        b -= b.mean()
        x = solver.solve(b)
        assert np.allclose(L @ x, b, atol=1e-8)


def test_cholesky_rejects_indefinite_matrix():
    A = sp.diags([2.0, -1.0, 3.0], format="csc")
    with pytest.raises(NotPositiveDefiniteError):
        cholesky(A, np.ones(3))


def test_cholesky_rejects_indefinite_matrix_with_zero_diagonal():
    # Eigenvalues are +1 and -1; row swapping alone would give positive pivots
    A = sp.csc_matrix(np.array([[0.0, 1.0], [1.0, 0.0]]))
    with pytest.raises(NotPositiveDefiniteError):
        cholesky(A, np.ones(2))


def test_cholesky_rejects_asymmetric_matrix():
    A = sp.csc_matrix(np.array([[2.0, 1.0], [0.0, 2.0]]))
    with pytest.raises(NotPositiveDefiniteError, match="symmetric"):
        CholeskySolver(A)


def test_lu_solves_general_system():
    A = sp.csc_matrix(np.array([[0.0, 2.0, 1.0], [1.0, 0.0, 0.0], [3.0, 1.0, 4.0]]))
    b = np.array([1.0, 2.0, 3.0])
    x = lu(A, b)
    assert np.allclose(A @ x, b)

    solver = LUSolver(A)
    assert np.allclose(solver.solve(b), x)


def test_lu_rejects_singular_matrix():
    A = sp.csc_matrix(np.array([[1.0, 2.0], [2.0, 4.0]]))
    with pytest.raises(SingularMatrixError):
        lu(A, np.ones(2))


def test_errors_share_a_base_class():
    assert issubclass(NotPositiveDefiniteError, LinearSolveError)
    assert issubclass(SingularMatrixError, LinearSolveError)
    assert issubclass(LinearSolveError, RuntimeError)


def test_rhs_shape_checked():
    with pytest.raises(ValueError):
        cholesky(random_spd(4), np.ones(5))
    with pytest.raises(ValueError):
        LUSolver(sp.identity(3, format="csc")).solve(np.ones(2))


def test_non_square_rejected():
    with pytest.raises(ValueError, match="square"):
        LUSolver(sp.csc_matrix(np.ones((2, 3))))


def test_smallest_eigenvector_dense():
    A = sp.diags([3.0, 1.0, 2.0], format="csc")
    B = sp.identity(3, format="csc")
    v = smallest_eigen_positive_definite(A, B)
    assert np.isclose(abs(v[1]), 1.0)
    assert np.allclose(v[[0, 2]], 0.0)


def test_smallest_eigenvector_of_laplacian(sphere):
    # The ground state of the regularized Laplacian against the mass matrix is constant
    L = build_laplacian(sphere)
    M = build_mass(sphere)
    v = smallest_eigen_positive_definite(L, M)
    assert np.isclose(v @ (M @ v), 1.0)
    assert np.allclose(v, v[0], rtol=1e-5)
