"""Principal Components Analysis of DGE count tables."""

import logging
import re
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict
from sklearn.decomposition import PCA

from .config import Config, get_config


logger = logging.getLogger(__name__)

WELL_PATTERN = re.compile(r"^([A-Pa-p])0*(\d{1,2})$")


class PCAResult(BaseModel):
    """Sample coordinates and explained variance of a PCA fit."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    scores: pd.DataFrame
    loadings: pd.DataFrame
    explained_variance_ratio: List[float]


def prepare_for_pca(
    counts: pd.DataFrame,
    min_total: int = 10,
    log_transform: bool = True
) -> pd.DataFrame:
    """
    Turn a genes x wells count table into a wells x genes feature matrix.

    Args:
        counts: Count table with genes as rows and wells as columns
        min_total: Genes with fewer counts across all wells are dropped
        log_transform: Apply log2(x + 1)

    Returns:
        DataFrame with samples as rows and retained genes as columns
    """
    data = counts.T.astype(float)

    keep = data.sum(axis=0) >= min_total
    data = data.loc[:, keep]

    if log_transform:
        data = np.log2(data + 1)

    # Remove genes with zero variance
    data = data.loc[:, data.var() > 0]

    logger.info(f"Retained {data.shape[1]:,} of {counts.shape[0]:,} genes for PCA")
    return data


def run_pca(data: pd.DataFrame, n_components: int = 10) -> PCAResult:
    """
    Run PCA on a samples x features matrix.

    Args:
        data: Feature matrix, samples as rows
        n_components: Maximum number of components to keep

    Returns:
        PCAResult
    """
    if data.shape[0] < 2 or data.shape[1] < 1:
        raise ValueError(
            f"PCA needs at least 2 samples and 1 feature, got {data.shape[0]} x {data.shape[1]}"
        )

    n = min(n_components, data.shape[0], data.shape[1])
    pca = PCA(n_components=n)
    coords = pca.fit_transform(data.values)

    pcs = [f"PC{i + 1}" for i in range(n)]
    scores = pd.DataFrame(coords, index=data.index, columns=pcs)
    loadings = pd.DataFrame(pca.components_.T, index=data.columns, columns=pcs)

    var_exp = [float(v) for v in pca.explained_variance_ratio_]
    logger.info(
        "Explained variance: " + ", ".join(f"{pc} {v * 100:.1f}%" for pc, v in zip(pcs[:3], var_exp))
    )
    return PCAResult(scores=scores, loadings=loadings, explained_variance_ratio=var_exp)


def well_metadata(wells: Iterable[str]) -> pd.DataFrame:
    """Split plate well labels such as 'A01' into plate row and column."""
    wells = [str(w) for w in wells]
    records = []
    for well in wells:
        match = WELL_PATTERN.match(well)
        if match:
            records.append({'plate_row': match.group(1).upper(), 'plate_column': int(match.group(2))})
        else:
            records.append({'plate_row': None, 'plate_column': None})
    return pd.DataFrame(records, index=wells)


def pca_vignette(counts: pd.DataFrame, config: Optional[Config] = None) -> PCAResult:
    """Filter, transform and decompose a count table using the configured settings."""
    config = config or get_config()
    data = prepare_for_pca(
        counts,
        min_total=config.pca.min_total_count,
        log_transform=config.pca.log_transform
    )
    return run_pca(data, n_components=config.pca.n_components)


if __name__ == "__main__":
    from .reconstruct import read_dense_matrix
    from .visualizations import create_pca_plot

    logging.basicConfig(level=logging.INFO)

    config = get_config()
    counts = read_dense_matrix(config.paths.output_dir / "dge-counts.tsv")
    result = pca_vignette(counts, config)
    fig = create_pca_plot(result, well_metadata(result.scores.index), color_col='plate_row')
    fig.show()
