"""Gene annotation tables from Ensembl BioMart."""

import io
import logging
import time
from typing import List, Optional

import pandas as pd
import requests

from .errors import AnnotationError


logger = logging.getLogger(__name__)

BIOMART_SERVER = "https://www.ensembl.org/biomart/martservice"

DEFAULT_ATTRIBUTES = ["ensembl_gene_id", "hgnc_symbol"]


def build_query(dataset: str, attributes: List[str]) -> str:
    """Generate BioMart XML query."""
    attribute_xml = "\n".join(f'        <Attribute name="{a}"/>' for a in attributes)
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE Query>
<Query virtualSchemaName="default" formatter="TSV" header="1" uniqueRows="1" count="" datasetConfigVersion="0.6">
    <Dataset name="{dataset}" interface="default">
{attribute_xml}
    </Dataset>
</Query>"""


def fetch_gene_annotation(
    dataset: str = "hsapiens_gene_ensembl",
    attributes: Optional[List[str]] = None,
    server: str = BIOMART_SERVER,
    timeout: int = 600
) -> pd.DataFrame:
    """
    Download a gene annotation table from BioMart.

    Args:
        dataset: BioMart dataset name
        attributes: Attributes to retrieve, in column order
        server: martservice URL
        timeout: Request timeout in seconds

    Returns:
        DataFrame with one column per attribute, all values as text
    """
    attributes = attributes or DEFAULT_ATTRIBUTES
    logger.info(f"Querying BioMart {dataset} for {', '.join(attributes)}...")
    start = time.time()

    try:
        response = requests.get(
            server,
            params={'query': build_query(dataset, attributes)},
            timeout=timeout
        )
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise AnnotationError(f"BioMart request failed: {e}") from e

    if response.text.startswith('Query ERROR'):
        raise AnnotationError(f"BioMart error: {response.text[:500]}")

    df = pd.read_csv(io.StringIO(response.text), sep="\t", dtype=str, keep_default_na=False)
    # BioMart headers use display names; rename to the requested attributes
    if len(df.columns) != len(attributes):
        raise AnnotationError(
            f"BioMart returned {len(df.columns)} columns for {len(attributes)} attributes"
        )
    df.columns = attributes

    logger.info(f"  Got {len(df):,} rows in {time.time() - start:.1f}s")
    return df
