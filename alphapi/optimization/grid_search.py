"""Exhaustive search over the parameters of the generative model."""

import itertools
import logging
from collections.abc import Callable

logger = logging.getLogger()


class GridSearch:
    def __init__(
        self,
        alpha_candidates: list[float],
        beta_candidates: list[float],
        gamma_candidates: list[float],
    ) -> None:
        """Grid over peptide emission ('alpha'), spurious emission ('beta') and protein prior ('gamma').

        Parameters
        ----------
        alpha_candidates, beta_candidates, gamma_candidates : list[float]
            Non-empty candidate lists of each parameter.
        """
        for name, candidates in (
            ("alpha", alpha_candidates),
            ("beta", beta_candidates),
            ("gamma", gamma_candidates),
        ):
            if len(candidates) == 0:
                raise ValueError(f"No {name} candidates given")

        self.alpha_candidates = list(alpha_candidates)
        self.beta_candidates = list(beta_candidates)
        self.gamma_candidates = list(gamma_candidates)

    def __len__(self) -> int:
        return (
            len(self.alpha_candidates)
            * len(self.beta_candidates)
            * len(self.gamma_candidates)
        )

    def evaluate(
        self,
        evaluator: Callable[[float, float, float], float],
        lower_bound: float = -1.0,
    ) -> tuple[float, tuple[int, int, int]]:
        """Evaluate every parameter triple and return the best.

        Triples are visited in `(alpha, beta, gamma)` order. Only a strictly greater score replaces the current
        best, so ties keep the triple that was visited first.

        Parameters
        ----------
        evaluator : Callable[[float, float, float], float]
            Called with `(alpha, beta, gamma)`, returns a score where higher is better.

        lower_bound : float, default -1.0
            Initial best score.

        Returns
        -------
        tuple[float, tuple[int, int, int]]
            The best score and the indices `(i_alpha, i_beta, i_gamma)` of the best triple.
        """
        best_score = lower_bound
        best_idx = (0, 0, 0)

        for i_alpha, i_beta, i_gamma in itertools.product(
            range(len(self.alpha_candidates)),
            range(len(self.beta_candidates)),
            range(len(self.gamma_candidates)),
        ):
            alpha = self.alpha_candidates[i_alpha]
            beta = self.beta_candidates[i_beta]
            gamma = self.gamma_candidates[i_gamma]

            score = evaluator(alpha, beta, gamma)
            logger.info(
                f"Grid search alpha={alpha}, beta={beta}, gamma={gamma}: score {score:.4f}"
            )
            if score > best_score:
                best_score = score
                best_idx = (i_alpha, i_beta, i_gamma)

        return best_score, best_idx
