from __future__ import annotations

from dataclasses import asdict, dataclass
from numbers import Real

from .aggregate import DEFAULT_Z_THRESHOLD
from .errors import InvalidParameterError
from .laplacian import LAPLACIAN_EPSILON
from .scoring import DEFAULT_GAP_THRESHOLD, DEFAULT_WINDOW_SIZE
from .temporal import PRESENCE_CUTOFF


@dataclass(frozen=True)
class TimeCompareConfig:
    """Run parameters for a time-course boundary analysis."""

    resolution: float | str = "auto"
    z_threshold: float = DEFAULT_Z_THRESHOLD
    window_size: int = DEFAULT_WINDOW_SIZE
    gap_threshold: float = DEFAULT_GAP_THRESHOLD
    presence_cutoff: float = PRESENCE_CUTOFF
    epsilon: float = LAPLACIAN_EPSILON
    n_jobs: int | None = None

    def __post_init__(self) -> None:
        res = self.resolution
        if isinstance(res, str):
            if res.lower() != "auto":
                raise InvalidParameterError(f"resolution must be a number or 'auto'; got {res!r}")
        elif not isinstance(res, Real) or res <= 0:
            raise InvalidParameterError(f"resolution must be positive; got {res!r}")

        if int(self.window_size) != self.window_size or self.window_size < 2:
            raise InvalidParameterError(f"window_size must be an integer >= 2; got {self.window_size!r}")
        if not 0 < self.gap_threshold < 1:
            raise InvalidParameterError(f"gap_threshold must be in (0, 1); got {self.gap_threshold!r}")
        if self.z_threshold <= 0:
            raise InvalidParameterError(f"z_threshold must be positive; got {self.z_threshold!r}")
        if self.epsilon <= 0:
            raise InvalidParameterError(f"epsilon must be positive; got {self.epsilon!r}")
        if self.n_jobs is not None and int(self.n_jobs) == 0:
            raise InvalidParameterError("n_jobs must not be 0")

    def to_dict(self) -> dict:
        return asdict(self)
