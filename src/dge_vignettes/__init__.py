"""DGE Vignettes - wrangling and PCA workflows for Digital Gene Expression data."""

__version__ = "0.1.0"

from .config import get_config, Config
from .getdata import get_data
from .sparse import read_sparse_triplets
from .identifiers import resolve_rows, resolve_columns
from .reconstruct import reconstruct_dense, write_dense_matrix
from .wrangling import run_wrangling, WranglingInputs
from .pca import run_pca

__all__ = [
    'get_config',
    'Config',
    'get_data',
    'read_sparse_triplets',
    'resolve_rows',
    'resolve_columns',
    'reconstruct_dense',
    'write_dense_matrix',
    'run_wrangling',
    'WranglingInputs',
    'run_pca'
]
