"""
Deterministic pseudo-random numbers for forward flux sampling.

Every stochastic decision in a run (trial selection, pruning, the model's own
dynamics) draws from a ``LaggedFibonacciRNG``. The generator is Knuth's
subtractive lagged-Fibonacci scheme: a 55 entry table, modulus 10**9 and four
warm-up passes. Its output is a pure function of (seed, number of draws), which
is what lets a path be regenerated from nothing more than a stored seed.
"""
from __future__ import annotations

import random

MBIG = 1000000000
MZ = 0
NTABLE = 55
# draws below this are rejected wherever a zero deviate would be singular
EPS_POSITIVE = 1.0e-11


class LaggedFibonacciRNG(random.Random):
    """
    Subclass of random.Random whose core generator is the subtractive lagged-Fibonacci
    method. Only random() is provided by the core generator; gauss(), randint(), choice()
    etc. are built on top of it by random.Random and are reproducible for a given seed.
    """
    _table: list[int]
    _inext: int
    _inextp: int
    _seed: int

    def __init__(self, seed: int = 0):
        self._table = [0] * (NTABLE + 1)
        self._inext = 0
        self._inextp = 31
        self._seed = 0
        super().__init__(seed)

    def seed(self, a=0, version=2):
        """
        Reinitialize the lag table from an integer seed. The sign of the seed is ignored.
        """
        if a is None:
            a = 0
        a = int(a)
        self._seed = a
        ma = [0] * (NTABLE + 1)
        mj = abs(a) % MBIG
        ma[NTABLE] = mj
        mk = 1
        for i in range(1, NTABLE):
            ii = (21 * i) % NTABLE
            ma[ii] = mk
            mk = mj - mk
            if mk < MZ:
                mk += MBIG
            mj = ma[ii]
        # warm up
        for _ in range(4):
            for i in range(1, NTABLE + 1):
                ma[i] -= ma[1 + (i + 30) % NTABLE]
                if ma[i] < MZ:
                    ma[i] += MBIG
        self._table = ma
        self._inext = 0
        self._inextp = 31
        self.gauss_next = None

    def _next(self) -> int:
        self._inext += 1
        if self._inext == NTABLE + 1:
            self._inext = 1
        self._inextp += 1
        if self._inextp == NTABLE + 1:
            self._inextp = 1
        mj = self._table[self._inext] - self._table[self._inextp]
        if mj < MZ:
            mj += MBIG
        self._table[self._inext] = mj
        return mj

    def random(self) -> float:
        """
        Returns a uniform deviate on [0, 1)
        """
        return self._next() / MBIG

    def random_positive(self, eps: float = EPS_POSITIVE) -> float:
        """
        Returns a uniform deviate on [eps, 1), discarding smaller draws
        """
        r = self.random()
        while r < eps:
            r = self.random()
        return r

    def next_seed(self) -> int:
        """
        Draws an integer seed on [0, 10**9) from this stream
        """
        return self._next()

    def initial_seed(self) -> int:
        return self._seed

    def getstate(self):
        return self._seed, tuple(self._table), self._inext, self._inextp, self.gauss_next

    def setstate(self, state):
        seed, table, inext, inextp, gauss_next = state
        self._seed = seed
        self._table = list(table)
        self._inext = inext
        self._inextp = inextp
        self.gauss_next = gauss_next



def spawn_seed(seed: int) -> int:
    """
    Seed of a stream kept apart from the one started by seed (and its neighbours seed + n,
    which the flux collector uses)
    """
    return LaggedFibonacciRNG(seed).next_seed()
