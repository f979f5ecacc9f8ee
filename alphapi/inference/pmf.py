"""Probability mass functions over small integer supports."""

import numpy as np

from alphapi.exceptions import InvariantViolationError


class PMF:
    def __init__(self, first_support: int, table: np.ndarray | list[float]) -> None:
        """Probability mass function over the integer range [first_support, last_support].

        The table is not required to be normalized, see `normalized`.

        Parameters
        ----------
        first_support : int
            Smallest value with an entry in the table.

        table : np.ndarray
            One entry per value of the support, starting at `first_support`.
        """
        self.first_support = int(first_support)
        self.table = np.asarray(table, dtype=np.float64)

        if self.table.ndim != 1 or len(self.table) == 0:
            raise ValueError("PMF table must be a non-empty 1D array")

    @classmethod
    def uniform(cls, first_support: int, last_support: int) -> "PMF":
        n = last_support - first_support + 1
        return cls(first_support, np.full(n, 1.0 / n))

    @property
    def last_support(self) -> int:
        return self.first_support + len(self.table) - 1

    def __len__(self) -> int:
        return len(self.table)

    def __repr__(self) -> str:
        return f"PMF(first_support={self.first_support}, table={self.table.tolist()})"

    def probability(self, value: int) -> float:
        """Entry for `value`, 0 if the value lies outside of the support."""
        if self.first_support <= value <= self.last_support:
            return float(self.table[value - self.first_support])
        return 0.0

    def values_over(self, first: int, last: int) -> np.ndarray:
        """Table entries for the range [first, last], padded with zeros outside of the support."""
        values = np.zeros(last - first + 1)
        lo = max(first, self.first_support)
        hi = min(last, self.last_support)
        if lo <= hi:
            values[lo - first : hi - first + 1] = self.table[
                lo - self.first_support : hi - self.first_support + 1
            ]
        return values

    def check_finite(self) -> None:
        if not np.all(np.isfinite(self.table)):
            raise InvariantViolationError(f"Non-finite values in {self!r}")

    def normalized(self) -> "PMF":
        """Return a copy summing to one.

        A table without any mass, e.g. after underflow of a long product, is replaced by the uniform distribution.

        Raises
        ------
        InvariantViolationError
            If the table contains NaN or infinite values.
        """
        self.check_finite()
        total = self.table.sum()
        if total <= 0.0:
            return PMF.uniform(self.first_support, self.last_support)
        return PMF(self.first_support, self.table / total)

    def __mul__(self, other: "PMF") -> "PMF":
        """Pointwise product on the intersection of both supports."""
        first = max(self.first_support, other.first_support)
        last = min(self.last_support, other.last_support)
        if first > last:
            raise InvariantViolationError(f"Disjoint supports of {self!r} and {other!r}")
        return PMF(
            first, self.values_over(first, last) * other.values_over(first, last)
        )

    def convolve(self, other: "PMF") -> "PMF":
        """Distribution of the sum of two independent variables."""
        return PMF(
            self.first_support + other.first_support,
            np.convolve(self.table, other.table),
        )

    def dampened(self, old: "PMF", dampening_lambda: float) -> "PMF":
        """Convex combination `(1 - lambda) * self + lambda * old` on the union of both supports."""
        if dampening_lambda == 0.0:
            return self
        first = min(self.first_support, old.first_support)
        last = max(self.last_support, old.last_support)
        return PMF(
            first,
            (1.0 - dampening_lambda) * self.values_over(first, last)
            + dampening_lambda * old.values_over(first, last),
        )

    def distance(self, other: "PMF") -> float:
        """L1 distance on the union of both supports."""
        first = min(self.first_support, other.first_support)
        last = max(self.last_support, other.last_support)
        return float(
            np.abs(
                self.values_over(first, last) - other.values_over(first, last)
            ).sum()
        )
