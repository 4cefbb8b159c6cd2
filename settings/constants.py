"""
Numeric constants shared by the operator assembly and the solvers.
"""

import numpy as np

# Diagonal regularizer added to Laplacian-like matrices so that they stay
# positive definite on closed meshes
REGULARIZATION = 1e-8

# Allowed deviation between the Euler characteristic and the sum of the
# prescribed singularity indices
GAUSS_BONNET_TOLERANCE = 1e-8

# Edges shorter than this (or faces with smaller doubled area) are degenerate
EPS_DEGENERATE = 1e-12

TWO_PI = 2.0 * np.pi

DEFAULT_SEED = 42
