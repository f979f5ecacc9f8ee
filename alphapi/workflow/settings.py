"""Immutable, validated settings derived from a `Config`.

A `Config` is the mutable, yaml backed representation of the user input. Before any inference runs it is
validated and frozen into the dataclasses below, which are then threaded explicitly through the compiler,
the schedulers and the grid search.
"""

from dataclasses import dataclass, field

from alphapi.constants.keys import ConfigKeys, SchedulingType
from alphapi.exceptions import OutOfRangeConfigError
from alphapi.workflow.config import Config


def _check_unit_interval(key: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise OutOfRangeConfigError(key, value, "[0, 1]")


def _check_integer(key: str, value: int, minimum: int) -> None:
    # bool is a subclass of int but never a valid count
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise OutOfRangeConfigError(key, value, f"integer in [{minimum}, inf)")


@dataclass(frozen=True)
class ModelParameters:
    """Parameters of the generative model.

    Attributes
    ----------
    pep_emission : float
        Probability that a present protein emits a peptide ('alpha').
    pep_spurious_emission : float
        Probability that a peptide is identified although no parent protein is present ('beta').
    prot_prior : float
        Prior probability that a protein is present ('gamma').
    """

    pep_emission: float = 0.1
    pep_spurious_emission: float = 0.001
    prot_prior: float = 0.9

    def __post_init__(self):
        for key in (
            ConfigKeys.PEP_EMISSION,
            ConfigKeys.PEP_SPURIOUS_EMISSION,
            ConfigKeys.PROT_PRIOR,
        ):
            _check_unit_interval(
                f"{ConfigKeys.MODEL_PARAMETERS}.{key}", getattr(self, key)
            )


@dataclass(frozen=True)
class BeliefPropagationSettings:
    scheduling_type: str = SchedulingType.PRIORITY
    convergence_threshold: float = 1e-5
    dampening_lambda: float = 1e-3
    max_nr_iterations: int = 1 << 32
    random_state: int | None = 42

    def __post_init__(self):
        prefix = ConfigKeys.LOOPY_BELIEF_PROPAGATION

        if self.scheduling_type not in SchedulingType.get_values():
            raise OutOfRangeConfigError(
                f"{prefix}.{ConfigKeys.SCHEDULING_TYPE}",
                self.scheduling_type,
                str(SchedulingType.get_values()),
            )
        if not self.convergence_threshold > 0:
            raise OutOfRangeConfigError(
                f"{prefix}.{ConfigKeys.CONVERGENCE_THRESHOLD}",
                self.convergence_threshold,
                "(0, inf)",
            )
        if not 0 <= self.dampening_lambda < 1:
            raise OutOfRangeConfigError(
                f"{prefix}.{ConfigKeys.DAMPENING_LAMBDA}",
                self.dampening_lambda,
                "[0, 1)",
            )
        _check_integer(
            f"{prefix}.{ConfigKeys.MAX_NR_ITERATIONS}", self.max_nr_iterations, 1
        )


@dataclass(frozen=True)
class GridSearchSettings:
    aucweight: float = 0.2
    pep_emission_candidates: tuple[float, ...] = (0.1, 0.3, 0.5, 0.7, 0.9)
    pep_spurious_emission_candidates: tuple[float, ...] = (0.001,)
    prot_prior_candidates: tuple[float, ...] = (0.5,)

    def __post_init__(self):
        prefix = ConfigKeys.PARAM_OPTIMIZE
        _check_unit_interval(f"{prefix}.{ConfigKeys.AUCWEIGHT}", self.aucweight)

        for key in (
            ConfigKeys.PEP_EMISSION_CANDIDATES,
            ConfigKeys.PEP_SPURIOUS_EMISSION_CANDIDATES,
            ConfigKeys.PROT_PRIOR_CANDIDATES,
        ):
            candidates = getattr(self, key)
            if len(candidates) == 0:
                raise OutOfRangeConfigError(
                    f"{prefix}.{key}", candidates, "non-empty list"
                )
            for candidate in candidates:
                _check_unit_interval(f"{prefix}.{key}", candidate)

    @property
    def is_trivial(self) -> bool:
        """True if the grid holds a single parameter triple."""
        return (
            len(self.pep_emission_candidates)
            * len(self.pep_spurious_emission_candidates)
            * len(self.prot_prior_candidates)
            == 1
        )

    def model_parameters(
        self, i_alpha: int = 0, i_beta: int = 0, i_gamma: int = 0
    ) -> ModelParameters:
        """Parameter triple at the given candidate indices."""
        return ModelParameters(
            pep_emission=self.pep_emission_candidates[i_alpha],
            pep_spurious_emission=self.pep_spurious_emission_candidates[i_beta],
            prot_prior=self.prot_prior_candidates[i_gamma],
        )


@dataclass(frozen=True)
class InferenceSettings:
    annotate_groups_only: bool = False
    top_psms: int = 1
    extended_model: bool = True
    thread_count: int = 1
    model_parameters: ModelParameters = field(default_factory=ModelParameters)
    belief_propagation: BeliefPropagationSettings = field(
        default_factory=BeliefPropagationSettings
    )
    grid_search: GridSearchSettings = field(default_factory=GridSearchSettings)

    def __post_init__(self):
        _check_integer(ConfigKeys.TOP_PSMS, self.top_psms, 0)
        _check_integer(
            f"{ConfigKeys.GENERAL}.{ConfigKeys.THREAD_COUNT}", self.thread_count, 1
        )

    @classmethod
    def from_config(cls, config: Config) -> "InferenceSettings":
        """Validate a (merged) config and freeze it into settings.

        Raises
        ------
        OutOfRangeConfigError
            If any option lies outside of its valid range.
        """
        general = config[ConfigKeys.GENERAL]
        model = config[ConfigKeys.MODEL_PARAMETERS]
        lbp = config[ConfigKeys.LOOPY_BELIEF_PROPAGATION]
        optimize = config[ConfigKeys.PARAM_OPTIMIZE]

        return cls(
            annotate_groups_only=config[ConfigKeys.ANNOTATE_GROUPS_ONLY],
            top_psms=config[ConfigKeys.TOP_PSMS],
            extended_model=config[ConfigKeys.EXTENDED_MODEL],
            thread_count=general[ConfigKeys.THREAD_COUNT],
            model_parameters=ModelParameters(
                pep_emission=model[ConfigKeys.PEP_EMISSION],
                pep_spurious_emission=model[ConfigKeys.PEP_SPURIOUS_EMISSION],
                prot_prior=model[ConfigKeys.PROT_PRIOR],
            ),
            belief_propagation=BeliefPropagationSettings(
                scheduling_type=lbp[ConfigKeys.SCHEDULING_TYPE],
                convergence_threshold=lbp[ConfigKeys.CONVERGENCE_THRESHOLD],
                dampening_lambda=lbp[ConfigKeys.DAMPENING_LAMBDA],
                max_nr_iterations=lbp[ConfigKeys.MAX_NR_ITERATIONS],
                random_state=general[ConfigKeys.RANDOM_STATE],
            ),
            grid_search=GridSearchSettings(
                aucweight=optimize[ConfigKeys.AUCWEIGHT],
                pep_emission_candidates=tuple(
                    optimize[ConfigKeys.PEP_EMISSION_CANDIDATES]
                ),
                pep_spurious_emission_candidates=tuple(
                    optimize[ConfigKeys.PEP_SPURIOUS_EMISSION_CANDIDATES]
                ),
                prot_prior_candidates=tuple(optimize[ConfigKeys.PROT_PRIOR_CANDIDATES]),
            ),
        )

