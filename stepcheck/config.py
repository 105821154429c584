from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    """Tunables for canonicalization and the numeric equivalence fallback."""

    max_expansion_iterations: int = 3
    # Points where a one-variable difference is sampled when symbolic
    # simplification cannot show it is zero.
    probe_values: tuple = (0, 1, 2, -1, 5, 10)
    tolerance: float = 1e-10


DEFAULT_CONFIG = EngineConfig()
