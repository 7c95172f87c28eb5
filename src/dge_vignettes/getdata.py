"""Retrieval of example datasets for the vignettes."""

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import requests
from pydantic import BaseModel

from .config import Config, get_config
from .errors import UnrecognizedLabelError


logger = logging.getLogger(__name__)


class DatasetFile(BaseModel):
    """A file hosted on Synapse."""
    synapse_id: str


class Dataset(BaseModel):
    """Files required by one vignette."""
    label: str
    description: str
    files: List[DatasetFile]


DATASETS: Dict[str, Dataset] = {
    "dge-pca": Dataset(
        label="dge-pca",
        description=(
            "Data for the vignette that demonstrates how to apply Principal "
            "Components Analysis to a counts matrix from a DGE experiment"
        ),
        files=[
            DatasetFile(synapse_id="syn9952382"),
            DatasetFile(synapse_id="syn9952383"),
        ]
    ),
}


class SynapseClient:
    """Minimal client for downloading files from the Synapse REST API."""

    def __init__(self, base_url: str, auth_token: Optional[str] = None,
                 timeout: int = 300, chunk_size: int = 8192):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = requests.Session()
        if auth_token:
            self.session.headers["Authorization"] = f"Bearer {auth_token}"

    def entity_name(self, synapse_id: str) -> str:
        """Look up the file name of an entity."""
        response = self.session.get(f"{self.base_url}/entity/{synapse_id}", timeout=self.timeout)
        response.raise_for_status()
        return response.json()["name"]

    def download(self, synapse_id: str, destination: Path) -> Path:
        """Stream an entity's file to destination, replacing it only once complete."""
        tmp_path = destination.with_name(destination.name + ".part")
        start = time.time()

        try:
            with self.session.get(
                f"{self.base_url}/entity/{synapse_id}/file",
                timeout=self.timeout,
                stream=True
            ) as response:
                response.raise_for_status()
                with open(tmp_path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        f.write(chunk)
            tmp_path.replace(destination)
        except BaseException:
            if tmp_path.exists():
                tmp_path.unlink()
            raise

        logger.info(f"  Downloaded {synapse_id} to {destination} in {time.time() - start:.1f}s")
        return destination


def get_data(label: str, config: Optional[Config] = None,
             client: Optional[SynapseClient] = None) -> Path:
    """
    Download the data used by a vignette into <data_dir>/<label>.

    Files already present are not downloaded again.

    Args:
        label: Vignette label, one of DATASETS ("dge-pca")
        config: Settings; the global configuration is used if None
        client: Synapse client (built from config if None)

    Returns:
        Directory holding the dataset files
    """
    config = config or get_config()
    data_dir = config.paths.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)

    if label not in DATASETS:
        raise UnrecognizedLabelError(
            f"Unrecognized vignette label: {label}. "
            f"Known labels: {', '.join(sorted(DATASETS))}"
        )

    dataset = DATASETS[label]
    target = data_dir / label
    target.mkdir(exist_ok=True)

    if client is None:
        client = SynapseClient(
            config.synapse.base_url,
            auth_token=config.synapse.auth_token,
            timeout=config.synapse.timeout,
            chunk_size=config.synapse.chunk_size
        )

    logger.info(f"Fetching '{label}' data into {target}")
    for item in dataset.files:
        destination = target / client.entity_name(item.synapse_id)
        if destination.exists():
            logger.info(f"  {destination.name} already present")
            continue
        client.download(item.synapse_id, destination)

    return target


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print(get_data("dge-pca"))
