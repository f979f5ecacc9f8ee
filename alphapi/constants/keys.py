class ConstantsClass(type):
    """A metaclass for classes that should only contain string constants."""

    def __setattr__(self, name, value):
        raise TypeError("Constants class cannot be modified")

    def get_values(cls):
        """Get all user-defined string values of the class."""
        return [
            value
            for key, value in cls.__dict__.items()
            if not key.startswith("__") and isinstance(value, str)
        ]


class ConfigKeys(metaclass=ConstantsClass):
    """String constants for accessing the config."""

    GENERAL = "general"
    LOG_LEVEL = "log_level"
    THREAD_COUNT = "thread_count"
    RANDOM_STATE = "random_state"

    ANNOTATE_GROUPS_ONLY = "annotate_groups_only"
    TOP_PSMS = "top_PSMs"
    EXTENDED_MODEL = "extended_model"

    MODEL_PARAMETERS = "model_parameters"
    PROT_PRIOR = "prot_prior"
    PEP_EMISSION = "pep_emission"
    PEP_SPURIOUS_EMISSION = "pep_spurious_emission"

    LOOPY_BELIEF_PROPAGATION = "loopy_belief_propagation"
    SCHEDULING_TYPE = "scheduling_type"
    CONVERGENCE_THRESHOLD = "convergence_threshold"
    DAMPENING_LAMBDA = "dampening_lambda"
    MAX_NR_ITERATIONS = "max_nr_iterations"

    PARAM_OPTIMIZE = "param_optimize"
    AUCWEIGHT = "aucweight"
    PEP_EMISSION_CANDIDATES = "pep_emission_candidates"
    PEP_SPURIOUS_EMISSION_CANDIDATES = "pep_spurious_emission_candidates"
    PROT_PRIOR_CANDIDATES = "prot_prior_candidates"


class SchedulingType(metaclass=ConstantsClass):
    """String constants for the message scheduling policies of loopy belief propagation."""

    PRIORITY = "priority"
    FIFO = "fifo"
    RANDOM_SPANNING_TREE = "random_spanning_tree"


class PsmDfCols(metaclass=ConstantsClass):
    """String constants for the columns of the PSM table consumed by the identification store."""

    SPECTRUM_IDX = "spectrum_idx"
    RUN = "run"
    SEQUENCE = "sequence"
    CHARGE = "charge"
    SCORE = "score"
    PROTEINS = "proteins"
    DECOY = "decoy"


class ProteinDfCols(metaclass=ConstantsClass):
    """String constants for the columns of the protein and protein group tables."""

    ACCESSION = "accession"
    SCORE = "score"
    DECOY = "decoy"
    ACCESSIONS = "accessions"
    PROBABILITY = "probability"
    QVAL = "qval"


POSTERIOR_SCORE_TYPE = "Posterior Probability"


class FactorKind(metaclass=ConstantsClass):
    """String constants for the kinds of factors of the generative model."""

    PROTEIN_PRIOR = "protein_prior"
    PEPTIDE_EVIDENCE = "peptide_evidence"
    SUM_EVIDENCE = "sum_evidence"
    PROBABILISTIC_ADDER = "probabilistic_adder"
