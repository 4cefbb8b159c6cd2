from .scalar_poisson import solve_scalar_poisson
