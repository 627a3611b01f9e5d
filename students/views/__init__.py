from .promotion import (
    promotion_candidates,
    promotion_process,
)
