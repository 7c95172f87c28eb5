"""Generate synthetic raw DGE datasets for trying out the vignettes."""

from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd

from .config import get_config
from .wrangling import WranglingInputs


def generate_raw_dataset(
    output_dir: Union[str, Path],
    n_genes: int = 500,
    n_plate_rows: int = 2,
    n_plate_cols: int = 12,
    n_de_genes: int = 50,
    fold_change: float = 4.0,
    unmapped_fraction: float = 0.1,
    n_unassigned_barcodes: int = 2,
    seed: int = 42
) -> WranglingInputs:
    """
    Write a raw DGE dataset in the layout produced by the sequencing core.

    The first half of the plate rows are controls, the second half carry
    n_de_genes up-regulated genes. A fraction of genes has no symbol and a
    few barcodes are missing from the well table, so the wrangling pipeline
    has something to drop.

    Args:
        output_dir: Directory receiving the files
        n_genes: Number of matrix rows
        n_plate_rows: Plate rows (A, B, ...) in use
        n_plate_cols: Wells per plate row
        n_de_genes: Genes up-regulated in the treated rows
        fold_change: Fold change of those genes
        unmapped_fraction: Fraction of genes without a symbol
        n_unassigned_barcodes: Matrix columns with no well assignment
        seed: Random seed for reproducibility

    Returns:
        WranglingInputs pointing at the generated files
    """
    rng = np.random.default_rng(seed)
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    wells = [f"{chr(ord('A') + r)}{c:02d}" for r in range(n_plate_rows) for c in range(1, n_plate_cols + 1)]
    n_cols = len(wells) + n_unassigned_barcodes
    treated = np.array([w[0] >= chr(ord('A') + n_plate_rows // 2) for w in wells] +
                       [False] * n_unassigned_barcodes)

    # Sparse counts: low base expression leaves many zeros
    base = rng.lognormal(mean=0.5, sigma=1.5, size=n_genes)
    expression = np.repeat(base[:, None], n_cols, axis=1)
    expression[:n_de_genes, treated] *= fold_change
    counts = rng.poisson(expression)

    rows, cols = np.nonzero(counts)
    values = counts[rows, cols]
    with open(output_path / "counts.mtx", 'w') as f:
        f.write("%%MatrixMarket matrix coordinate integer general\n")
        f.write("% synthetic DGE counts\n")
        f.write(f"{n_genes} {n_cols} {len(values)}\n")
        for r, c, v in zip(rows, cols, values):
            f.write(f"{r + 1} {c + 1} {v}\n")

    gene_ids = [f"ENSG{i:011d}" for i in range(1, n_genes + 1)]
    (output_path / "genes.txt").write_text("\n".join(gene_ids) + "\n")

    bases = np.array(list("ACGT"))
    barcodes = []
    while len(barcodes) < n_cols:
        barcode = "".join(rng.choice(bases, size=8))
        if barcode not in barcodes:
            barcodes.append(barcode)
    (output_path / "barcodes.txt").write_text("\n".join(barcodes) + "\n")

    symbols = [f"GENE{i}" for i in range(1, n_genes + 1)]
    unmapped = rng.choice(n_genes, int(n_genes * unmapped_fraction), replace=False)
    for i in unmapped:
        symbols[i] = ""
    annotation = pd.DataFrame({'ensembl_gene_id': gene_ids, 'hgnc_symbol': symbols})
    annotation.to_csv(output_path / "annotation.tsv", sep='\t', index=False)

    barcode_table = pd.DataFrame({
        'Set': 1,
        'Well': wells,
        'Barcode': barcodes[:len(wells)]
    })
    barcode_table.to_csv(output_path / "barcode_wells.tsv", sep='\t', index=False)

    return WranglingInputs(
        matrix=output_path / "counts.mtx",
        gene_ids=output_path / "genes.txt",
        barcodes=output_path / "barcodes.txt",
        annotation=output_path / "annotation.tsv",
        barcode_table=output_path / "barcode_wells.tsv",
        output=output_path / "counts_dense.tsv"
    )


if __name__ == "__main__":
    inputs = generate_raw_dataset(get_config().paths.data_dir / "example_dge")
    print(f"✓ Generated raw DGE dataset in {inputs.matrix.parent.absolute()}")
