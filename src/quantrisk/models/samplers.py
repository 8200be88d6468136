"""
Distribution Samplers
======================

Primitive random-variate generators used by the loss simulator.

    triangular : inverse-CDF sampling of a three-point (min, mode, max)
                 estimate, used for per-event impact.
    poisson    : Knuth's multiplication method for lambda < 30 and a
                 rounded normal approximation above it.
    normal     : Box-Muller transform from two independent uniforms.

Every method draws from a single injected numpy Generator, so a fixed
seed reproduces the same stream. Passing size=None returns a scalar,
an integer size returns a vectorised array.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import numpy as np
from typing import Optional, Union

# Above this rate the Knuth loop is replaced by the normal approximation
POISSON_NORMAL_THRESHOLD = 30.0

SeedLike = Union[None, int, np.random.SeedSequence, np.random.Generator]

# Seeds accepted by the simulator, aggregator and engine. A Generator is
# excluded there: it carries state, so repeated runs would not repeat.
RunSeed = Union[None, int, np.random.SeedSequence]


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    """Build a Generator from an int, SeedSequence, Generator or None."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def check_run_seed(seed: RunSeed) -> RunSeed:
    if isinstance(seed, np.random.Generator):
        raise TypeError("Pass an int or SeedSequence seed, not a Generator; "
                        "a shared Generator would make repeated runs differ")
    return seed


def seed_sequence(seed: RunSeed) -> np.random.SeedSequence:
    """
    Fresh SeedSequence for one run.

    A SeedSequence argument is copied so that spawning children does not
    advance the caller's sequence and the same seed always spawns the
    same children.
    """
    seed = check_run_seed(seed)
    if isinstance(seed, np.random.SeedSequence):
        return np.random.SeedSequence(seed.entropy, spawn_key=seed.spawn_key,
                                      pool_size=seed.pool_size)
    return np.random.SeedSequence(seed)


class DistributionSampler:
    """
    Random-variate generator bound to one pseudo-random stream.

    Usage:
        >>> sampler = DistributionSampler(seed=42)
        >>> sampler.triangular(1_000, 50_000, 10_000, size=5)
        >>> sampler.poisson(0.4)
    """

    def __init__(self, seed: SeedLike = None):
        self.rng = make_rng(seed)

    def triangular(self, minimum: float, maximum: float, mode: float,
                   size: Optional[int] = None):
        """
        Triangular variate by inversion of the CDF.

            c = (mode - min) / (max - min)
            u <  c : x = min + sqrt(u * (max - min) * (mode - min))
            u >= c : x = max - sqrt((1 - u) * (max - min) * (max - mode))

        A zero-width range returns min without consuming a draw.
        """
        n = 1 if size is None else size
        width = maximum - minimum
        if width == 0:
            x = np.full(n, float(minimum))
        else:
            c = (mode - minimum) / width
            u = self.rng.random(n)
            left = minimum + np.sqrt(u * width * (mode - minimum))
            right = maximum - np.sqrt((1.0 - u) * width * (maximum - mode))
            x = np.where(u < c, left, right)
        return float(x[0]) if size is None else x

    def normal(self, mean: float, std: float, size: Optional[int] = None):
        """
        Normal variate via Box-Muller:
            z = sqrt(-2 ln u1) * cos(2 pi u2)
        u1 is drawn on (0, 1] so the logarithm stays finite.
        """
        n = 1 if size is None else size
        u1 = 1.0 - self.rng.random(n)
        u2 = self.rng.random(n)
        z = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
        x = mean + std * z
        return float(x[0]) if size is None else x

    def poisson(self, lam: float, size: Optional[int] = None):
        """
        Poisson event count.

        lambda < 30: Knuth's method, multiply uniforms until the running
        product falls to exp(-lambda); the count is the number of draws
        minus one.

        lambda >= 30: round(Normal(lambda, sqrt(lambda))), clamped at 0.
        This is an approximation; tail probabilities are less accurate
        than with the exact method.
        """
        if lam < 0:
            raise ValueError(f"Poisson rate must be non-negative, got {lam}")
        n = 1 if size is None else size
        if lam < POISSON_NORMAL_THRESHOLD:
            k = self._knuth(lam, n)
        else:
            approx = self.normal(lam, np.sqrt(lam), size=n)
            k = np.maximum(0, np.floor(approx + 0.5)).astype(np.int64)
        return int(k[0]) if size is None else k

    def _knuth(self, lam: float, n: int) -> np.ndarray:
        threshold = np.exp(-lam)
        k = np.zeros(n, dtype=np.int64)
        p = np.ones(n)
        active = np.ones(n, dtype=bool)
        while active.any():
            p[active] *= self.rng.random(int(active.sum()))
            k[active] += 1
            active = p > threshold
        return k - 1
