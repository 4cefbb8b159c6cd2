from .sparse_solve import (
    LinearSolveError,
    NotPositiveDefiniteError,
    SingularMatrixError,
    CholeskySolver,
    LUSolver,
    cholesky,
    lu,
    smallest_eigen_positive_definite,
)
