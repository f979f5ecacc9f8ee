"""Factors of the protein-peptide-PSM generative model."""

import numpy as np

from alphapi.constants.keys import FactorKind
from alphapi.inference.pmf import PMF
from alphapi.workflow.settings import ModelParameters


class Factor:
    """Base class of a factor over an ordered tuple of variables.

    Variables take integer values `0..max_value`, their domain sizes are known to the factor graph.
    """

    kind: str = ""

    def __init__(self, variables: tuple[int, ...]) -> None:
        if len(set(variables)) != len(variables):
            raise ValueError(f"Variables of a factor must be distinct: {variables}")
        self.variables = tuple(variables)

    def message_to(self, variable: int, incoming: dict[int, PMF]) -> PMF:
        """Sum-product message to `variable` given the messages of all other variables of the factor."""
        raise NotImplementedError()

    def evaluate(self, assignment: dict[int, int]) -> float:
        """Value of the factor for a full assignment of its variables."""
        raise NotImplementedError()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.kind}, variables={self.variables})"


class TableFactor(Factor):
    def __init__(
        self,
        variables: tuple[int, ...],
        table: np.ndarray,
        first_support: tuple[int, ...] | None = None,
        kind: str = "",
    ) -> None:
        """Factor given by a dense table with one axis per variable.

        Parameters
        ----------
        variables : tuple[int, ...]
            Variable ids, one per table axis.

        table : np.ndarray
            Non-negative factor values.

        first_support : tuple[int, ...], optional
            Value of the first entry along each axis, defaults to 0 for every axis.

        kind : str
            One of `FactorKind`.
        """
        super().__init__(variables)
        self.table = np.asarray(table, dtype=np.float64)
        self.first_support = (
            tuple(first_support)
            if first_support is not None
            else (0,) * len(self.variables)
        )
        self.kind = kind

        if self.table.ndim != len(self.variables):
            raise ValueError(
                f"Table with {self.table.ndim} axes for {len(self.variables)} variables"
            )

    def message_to(self, variable: int, incoming: dict[int, PMF]) -> PMF:
        target_axis = self.variables.index(variable)
        product = self.table

        for axis, other in enumerate(self.variables):
            if axis == target_axis:
                continue
            first = self.first_support[axis]
            last = first + self.table.shape[axis] - 1
            shape = [1] * self.table.ndim
            shape[axis] = -1
            product = product * incoming[other].values_over(first, last).reshape(shape)

        other_axes = tuple(a for a in range(self.table.ndim) if a != target_axis)
        return PMF(self.first_support[target_axis], product.sum(axis=other_axes))

    def evaluate(self, assignment: dict[int, int]) -> float:
        index = []
        for axis, variable in enumerate(self.variables):
            position = assignment[variable] - self.first_support[axis]
            if not 0 <= position < self.table.shape[axis]:
                return 0.0
            index.append(position)
        return float(self.table[tuple(index)])


class AdditiveFactor(Factor):
    kind = FactorKind.PROBABILISTIC_ADDER

    def __init__(
        self, inputs: tuple[int, ...], input_max: tuple[int, ...], output: int
    ) -> None:
        """Deterministic factor constraining `output` to equal the sum of `inputs`.

        Parameters
        ----------
        inputs : tuple[int, ...]
            Input variable ids.

        input_max : tuple[int, ...]
            Largest value of each input variable.

        output : int
            Output variable id, with values `0..sum(input_max)`.
        """
        super().__init__((*inputs, output))
        self.inputs = tuple(inputs)
        self.input_max = tuple(input_max)
        self.output = output

        if len(self.inputs) == 0:
            raise ValueError("Additive factor needs at least one input")

    def _sum_of(self, incoming: dict[int, PMF], exclude: int | None = None) -> PMF:
        total = PMF(0, [1.0])
        for variable in self.inputs:
            if variable != exclude:
                total = total.convolve(incoming[variable])
        return total

    def message_to(self, variable: int, incoming: dict[int, PMF]) -> PMF:
        if variable == self.output:
            return self._sum_of(incoming)

        others = self._sum_of(incoming, exclude=variable)
        output = incoming[self.output]
        max_value = self.input_max[self.inputs.index(variable)]

        table = np.array(
            [
                np.dot(
                    others.table,
                    output.values_over(
                        value + others.first_support, value + others.last_support
                    ),
                )
                for value in range(max_value + 1)
            ]
        )
        return PMF(0, table)

    def evaluate(self, assignment: dict[int, int]) -> float:
        total = sum(assignment[variable] for variable in self.inputs)
        return 1.0 if assignment[self.output] == total else 0.0


class MessagePasserFactory:
    def __init__(self, model_parameters: ModelParameters) -> None:
        """Create the factors of the generative model for one parameter triple.

        Parameters
        ----------
        model_parameters : ModelParameters
            Protein prior ('gamma'), peptide emission ('alpha') and spurious emission ('beta') probabilities.
        """
        self.alpha = model_parameters.pep_emission
        self.beta = model_parameters.pep_spurious_emission
        self.gamma = model_parameters.prot_prior

    def not_conditional_given_sum(self, n_active: np.ndarray) -> np.ndarray:
        """Probability `(1 - beta) * (1 - alpha) ** n_active` that a peptide is not emitted given `n_active`
        present parent proteins."""
        return (1.0 - self.beta) * np.power(1.0 - self.alpha, n_active)

    def create_protein_factor(self, protein: int) -> TableFactor:
        return TableFactor(
            (protein,),
            np.array([1.0 - self.gamma, self.gamma]),
            kind=FactorKind.PROTEIN_PRIOR,
        )

    def create_peptide_evidence_factor(self, psm: int, probability: float) -> TableFactor:
        return TableFactor(
            (psm,),
            np.array([1.0 - probability, probability]),
            kind=FactorKind.PEPTIDE_EVIDENCE,
        )

    def create_sum_evidence_factor(
        self, n_parents: int, parent: int, psm: int
    ) -> TableFactor:
        """Noisy-OR emission of a PSM given the number of present parents (0..n_parents) of its upstream node."""
        not_emitted = self.not_conditional_given_sum(np.arange(n_parents + 1))
        table = np.stack([not_emitted, 1.0 - not_emitted], axis=1)
        return TableFactor((parent, psm), table, kind=FactorKind.SUM_EVIDENCE)

    def create_probabilistic_adder_factor(
        self, parents: list[int], parent_max: list[int], node: int
    ) -> AdditiveFactor:
        return AdditiveFactor(tuple(parents), tuple(parent_max), node)
