"""
Sparse linear solve service.

Cholesky for symmetric positive-definite systems, general LU, and the smallest
generalized eigenpair of a positive-definite pencil. Factorizations are kept
on the solver objects so a matrix assembled once can serve many right-hand
sides. Every failure is terminal: nothing here retries.
"""

import logging

import numpy as np
import scipy.linalg
import scipy.sparse as sp
from scipy.sparse.linalg import splu, eigsh, ArpackError, ArpackNoConvergence

logger = logging.getLogger(__name__)

# Below this size the generalized eigenproblem is solved densely
DENSE_EIGEN_LIMIT = 64


class LinearSolveError(RuntimeError):
    """A linear solve could not be carried out."""


class NotPositiveDefiniteError(LinearSolveError):
    """A matrix handed to the Cholesky solver is not symmetric positive definite."""


class SingularMatrixError(LinearSolveError):
    """A matrix handed to the LU solver is singular."""


def _as_square_csc(A, name):
    A = sp.csc_matrix(A, dtype=np.float64)
    if A.shape[0] != A.shape[1]:
        raise ValueError(f"{name} requires a square matrix, got shape {A.shape}")
    return A


def _check_rhs(A, b):
    b = np.asarray(b, dtype=np.float64)
    if b.shape[0] != A.shape[0]:
        raise ValueError(f"Right-hand side has {b.shape[0]} rows, matrix has {A.shape[0]}")
    return b


class CholeskySolver:
    """
    Factorize a sparse SPD matrix once and solve against many right-hand sides.

    SuperLU runs in symmetric mode with diagonal pivoting only, which makes
    the factorization an LDL^T of a symmetric permutation of A. A is positive
    definite exactly when every pivot is positive, so a non-positive pivot, or a
    row permutation that differs from the column permutation, is reported as
    NotPositiveDefiniteError.
    """

    def __init__(self, A, symmetry_tol: float = 1e-10):
        A = _as_square_csc(A, "Cholesky")
        self.shape = A.shape

        scale = abs(A).max() if A.nnz else 0.0
        asymmetry = abs(A - A.T).max() if A.nnz else 0.0
        if asymmetry > symmetry_tol * max(scale, 1.0):
            raise NotPositiveDefiniteError(f"Matrix is not symmetric (max |A - A^T| = {asymmetry:.3e})")

        try:
            self._factor = splu(
                A,
                permc_spec="MMD_AT_PLUS_A",
                diag_pivot_thresh=0.0,
                options=dict(SymmetricMode=True),
            )
        except RuntimeError as e:
            raise NotPositiveDefiniteError(f"Cholesky factorization failed: {e}") from e

        # A zero on the diagonal forces SuperLU off the diagonal, and then U
        # no longer carries the LDL^T pivots
        if not np.array_equal(self._factor.perm_r, self._factor.perm_c):
            raise NotPositiveDefiniteError("Matrix is not positive definite (off-diagonal pivot required)")

        pivots = self._factor.U.diagonal()
        if np.any(pivots <= 0):
            raise NotPositiveDefiniteError(
                f"Matrix is not positive definite (smallest pivot {pivots.min():.3e})"
            )

        logger.debug("Cholesky factorization of %dx%d matrix (nnz=%d)", A.shape[0], A.shape[1], A.nnz)

    def solve(self, b) -> np.ndarray:
        b = np.asarray(b, dtype=np.float64)
        if b.shape[0] != self.shape[0]:
            raise ValueError(f"Right-hand side has {b.shape[0]} rows, matrix has {self.shape[0]}")
        x = self._factor.solve(b)
        if not np.all(np.isfinite(x)):
            raise NotPositiveDefiniteError("Cholesky solve produced non-finite values")
        return x


class LUSolver:
    """Factorize a general sparse square matrix once and reuse the factors."""

    def __init__(self, A):
        A = _as_square_csc(A, "LU")
        self.shape = A.shape
        try:
            self._factor = splu(A)
        except RuntimeError as e:
            raise SingularMatrixError(f"LU factorization failed: {e}") from e

        logger.debug("LU factorization of %dx%d matrix (nnz=%d)", A.shape[0], A.shape[1], A.nnz)

    def solve(self, b) -> np.ndarray:
        b = np.asarray(b, dtype=np.float64)
        if b.shape[0] != self.shape[0]:
            raise ValueError(f"Right-hand side has {b.shape[0]} rows, matrix has {self.shape[0]}")
        x = self._factor.solve(b)
        if not np.all(np.isfinite(x)):
            raise SingularMatrixError("LU solve produced non-finite values")
        return x


def cholesky(A, b) -> np.ndarray:
    """Solve the SPD system A x = b."""
    solver = CholeskySolver(A)
    return solver.solve(_check_rhs(A, b))


def lu(A, b) -> np.ndarray:
    """Solve the square system A x = b."""
    solver = LUSolver(A)
    return solver.solve(_check_rhs(A, b))


def smallest_eigen_positive_definite(A, B) -> np.ndarray:
    """
    Ground state of the generalized eigenproblem A v = lambda B v.

    Both A and B must be symmetric positive definite. Returns the eigenvector
    of the smallest eigenvalue, normalized so that v^T B v = 1.
    """
    A = _as_square_csc(A, "Generalized eigen solve")
    B = _as_square_csc(B, "Generalized eigen solve")
    if A.shape != B.shape:
        raise ValueError(f"A and B must have the same shape, got {A.shape} and {B.shape}")

    n = A.shape[0]
    if n <= DENSE_EIGEN_LIMIT:
        try:
            _, vectors = scipy.linalg.eigh(A.toarray(), B.toarray(), subset_by_index=[0, 0])
        except np.linalg.LinAlgError as e:
            raise NotPositiveDefiniteError(f"Dense generalized eigen solve failed: {e}") from e
        v = vectors[:, 0]
    else:
        try:
            # Shift-invert about zero returns the eigenvalue nearest zero,
            # which is the smallest one for a positive-definite pencil
            _, vectors = eigsh(A, k=1, M=B, sigma=0.0, which="LM")
        except (ArpackNoConvergence, ArpackError, RuntimeError) as e:
            raise LinearSolveError(f"Generalized eigen solve failed: {e}") from e
        v = vectors[:, 0]

    norm = np.sqrt(v @ (B @ v))
    if not np.isfinite(norm) or norm <= 0:
        raise NotPositiveDefiniteError("B is not positive definite on the ground state")
    return v / norm
