from .constants import (
    REGULARIZATION,
    GAUSS_BONNET_TOLERANCE,
    EPS_DEGENERATE,
    TWO_PI,
    DEFAULT_SEED,
)
from .logging_config import setup_logging
