"""In-memory identification records consumed and annotated by the protein inference.

The records form an arena: graph nodes refer to proteins by their index in `IdentificationStore.proteins` and
to PSMs by `(spectrum_idx, hit_idx)` into `IdentificationStore.peptide_ids`.
"""

import logging
from dataclasses import dataclass, field

import pandas as pd

from alphapi.constants.keys import ProteinDfCols, PsmDfCols

logger = logging.getLogger()

UNSET_SCORE = -1.0


@dataclass
class ProteinHit:
    accession: str
    score: float = UNSET_SCORE
    decoy: bool = False
    sequence: str = ""


@dataclass
class PeptideHit:
    """A single scored peptide-spectrum match.

    Attributes
    ----------
    sequence : str
        Peptide sequence, used to collapse PSMs of the same peptide.
    score : float
        Identification score, a probability in [0, 1] (or an error probability if the parent identification has
        `higher_score_better=False`).
    charge : int
        Precursor charge state.
    protein_accessions : list[str]
        Accessions of all proteins containing this peptide (the peptide evidences).
    """

    sequence: str
    score: float
    charge: int = 0
    protein_accessions: list[str] = field(default_factory=list)


@dataclass
class PeptideIdentification:
    """All candidate hits of one spectrum."""

    hits: list[PeptideHit] = field(default_factory=list)
    run: str = ""
    higher_score_better: bool = True


@dataclass
class ProteinGroup:
    accessions: list[str]
    probability: float = UNSET_SCORE


@dataclass
class IdentificationStore:
    """Caller owned identification records, mutated in place by the inference."""

    proteins: list[ProteinHit] = field(default_factory=list)
    peptide_ids: list[PeptideIdentification] = field(default_factory=list)
    indistinguishable_groups: list[ProteinGroup] = field(default_factory=list)
    score_type: str = ""
    higher_score_better: bool = True

    def reset_scores(self) -> None:
        """Set all protein scores back to unset."""
        for protein in self.proteins:
            protein.score = UNSET_SCORE

    @classmethod
    def from_psm_df(
        cls, psm_df: pd.DataFrame, protein_df: pd.DataFrame | None = None
    ) -> "IdentificationStore":
        """Create a store from a PSM table.

        Parameters
        ----------
        psm_df : pd.DataFrame
            One row per PSM with the columns `spectrum_idx`, `sequence`, `score` and `proteins`
            (semicolon separated accessions). The columns `run`, `charge` and `decoy` are optional.
            Spectra are created in order of first appearance.

        protein_df : pd.DataFrame, optional
            Table with the columns `accession` and optional `decoy`. If not provided, proteins are derived from
            the `proteins` column of `psm_df` in order of first appearance.

        Returns
        -------
        IdentificationStore
        """
        for column in [
            PsmDfCols.SPECTRUM_IDX,
            PsmDfCols.SEQUENCE,
            PsmDfCols.SCORE,
            PsmDfCols.PROTEINS,
        ]:
            if column not in psm_df.columns:
                raise ValueError(f"Column {column} is not present in the PSM table")

        store = cls()

        if protein_df is not None:
            decoys = (
                protein_df[ProteinDfCols.DECOY].astype(bool)
                if ProteinDfCols.DECOY in protein_df.columns
                else [False] * len(protein_df)
            )
            store.proteins = [
                ProteinHit(accession=str(accession), decoy=bool(decoy))
                for accession, decoy in zip(
                    protein_df[ProteinDfCols.ACCESSION], decoys, strict=True
                )
            ]
        else:
            protein_decoy = {}
            has_decoy = PsmDfCols.DECOY in psm_df.columns
            for idx, proteins in enumerate(
                psm_df[PsmDfCols.PROTEINS].fillna("").astype(str)
            ):
                for accession in _split_accessions(proteins):
                    if accession not in protein_decoy:
                        protein_decoy[accession] = (
                            bool(psm_df[PsmDfCols.DECOY].iloc[idx])
                            if has_decoy
                            else False
                        )
            store.proteins = [
                ProteinHit(accession=accession, decoy=decoy)
                for accession, decoy in protein_decoy.items()
            ]

        has_run = PsmDfCols.RUN in psm_df.columns
        has_charge = PsmDfCols.CHARGE in psm_df.columns

        spectra = {}
        for row in psm_df.itertuples(index=False):
            row = row._asdict()
            spectrum_idx = row[PsmDfCols.SPECTRUM_IDX]
            proteins = row[PsmDfCols.PROTEINS]
            if spectrum_idx not in spectra:
                spectra[spectrum_idx] = PeptideIdentification(
                    run=str(row[PsmDfCols.RUN]) if has_run else ""
                )
            spectra[spectrum_idx].hits.append(
                PeptideHit(
                    sequence=str(row[PsmDfCols.SEQUENCE]),
                    score=float(row[PsmDfCols.SCORE]),
                    charge=int(row[PsmDfCols.CHARGE]) if has_charge else 0,
                    protein_accessions=_split_accessions(
                        "" if pd.isna(proteins) else str(proteins)
                    ),
                )
            )
        store.peptide_ids = list(spectra.values())

        logger.info(
            f"Loaded {len(store.proteins):,} proteins and {len(psm_df):,} PSMs from {len(store.peptide_ids):,} spectra"
        )
        return store

    def to_protein_df(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                ProteinDfCols.ACCESSION: [p.accession for p in self.proteins],
                ProteinDfCols.SCORE: [p.score for p in self.proteins],
                ProteinDfCols.DECOY: [int(p.decoy) for p in self.proteins],
            }
        )

    def to_protein_group_df(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                ProteinDfCols.ACCESSIONS: [
                    ";".join(g.accessions) for g in self.indistinguishable_groups
                ],
                ProteinDfCols.PROBABILITY: [
                    g.probability for g in self.indistinguishable_groups
                ],
            }
        )


def _split_accessions(proteins: str) -> list[str]:
    return [accession for accession in proteins.split(";") if accession != ""]
