"""Target-decoy quality evaluation of protein posteriors."""

import logging

import numpy as np
import pandas as pd
from sklearn.metrics import roc_auc_score

from alphapi.constants.keys import ProteinDfCols
from alphapi.identification import UNSET_SCORE, IdentificationStore

logger = logging.getLogger()


def _fdr_to_q_values(fdr_values: np.ndarray) -> np.ndarray:
    """Converts FDR values to q-values.

    Takes an array of FDR values, sorted from the best to the worst score, and converts them to q-values.
    For every element the lowest FDR where it would be accepted is used as q-value.

    Parameters
    ----------
    fdr_values : np.ndarray
        The FDR values to convert.

    Returns
    -------
    np.ndarray
        The q-values.

    """
    fdr_values_flipped = np.flip(fdr_values)
    q_values_flipped = np.minimum.accumulate(fdr_values_flipped)
    return np.flip(q_values_flipped)


def get_q_values(
    df: pd.DataFrame,
    score_column: str = ProteinDfCols.SCORE,
    decoy_column: str = ProteinDfCols.DECOY,
    qval_column: str = ProteinDfCols.QVAL,
) -> pd.DataFrame:
    """Calculates target-decoy q-values for a dataframe of scored proteins.

    Parameters
    ----------
    df : pd.DataFrame
        The dataframe containing the proteins.

    score_column : str, default='score'
        The name of the column containing the score, higher is better.

    decoy_column : str, default='decoy'
        The name of the column containing the decoy information.
        Decoys are expected to be 1 and targets 0.

    qval_column : str, default='qval'
        The name of the column to store the q-values in.

    Returns
    -------
    pd.DataFrame
        The dataframe sorted by descending score, containing the q-values in column `qval_column`.

    """
    # decoys first among equal scores
    df = df.sort_values(
        [score_column, decoy_column], ascending=[False, False], kind="stable"
    ).reset_index(drop=True)
    decoy_values = df[decoy_column].to_numpy().astype(np.int64)
    decoy_cumsum = np.cumsum(decoy_values)
    target_cumsum = np.cumsum(1 - decoy_values)
    fdr_values = decoy_cumsum / np.maximum(target_cumsum, 1)
    df[qval_column] = _fdr_to_q_values(fdr_values)
    return df


class ProteinQualityEvaluator:
    def __init__(self, aucweight: float = 0.2) -> None:
        """Score protein posteriors by target-decoy separation and calibration.

        The score is `aucweight * AUC + (1 - aucweight) * calibration` where AUC is the ROC AUC of targets against
        decoys and calibration is `1 - mean |estimated FDR - target-decoy q-value|`. The estimated FDR at each rank
        is the mean error probability `1 - posterior` of all proteins up to that rank.
        Proteins without a posterior are not considered.

        Parameters
        ----------
        aucweight : float, default 0.2
            Weight of the AUC in the combined score.
        """
        self.aucweight = aucweight

    def auc(self, df: pd.DataFrame) -> float:
        if df[ProteinDfCols.DECOY].nunique() < 2:
            logger.warning(
                "Targets and decoys are required to compute the AUC, using AUC=0"
            )
            return 0.0
        return float(
            roc_auc_score(1 - df[ProteinDfCols.DECOY], df[ProteinDfCols.SCORE])
        )

    def calibration(self, df: pd.DataFrame) -> float:
        df = get_q_values(df)
        estimated_fdr = np.cumsum(1.0 - df[ProteinDfCols.SCORE].to_numpy()) / np.arange(
            1, len(df) + 1
        )
        deviation = np.abs(estimated_fdr - df[ProteinDfCols.QVAL].to_numpy()).mean()
        return float(np.clip(1.0 - deviation, 0.0, 1.0))

    def __call__(self, store: IdentificationStore) -> float:
        df = store.to_protein_df()
        df = df[df[ProteinDfCols.SCORE] != UNSET_SCORE]

        if len(df) == 0:
            logger.warning("No protein with a posterior probability to evaluate")
            return 0.0

        auc = self.auc(df)
        calibration = self.calibration(df)
        score = self.aucweight * auc + (1.0 - self.aucweight) * calibration
        logger.info(
            f"Evaluated {len(df):,} proteins: AUC {auc:.4f}, calibration {calibration:.4f}, score {score:.4f}"
        )
        return score
