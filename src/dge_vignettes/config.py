"""Configuration management for the DGE vignettes."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml


class DuplicateBarcodePolicy(str, Enum):
    """What to do when the barcode-to-well table repeats a barcode."""

    REJECT = "reject"
    WARN = "warn"
    FIRST = "first"


class PathConfig(BaseModel):
    """Path configurations."""

    base_dir: Path = Field(default_factory=lambda: Path.home() / "dge_vignettes")
    data_dir: Optional[Path] = None
    output_dir: Optional[Path] = None

    @field_validator("base_dir", "data_dir", "output_dir")
    @classmethod
    def expand_home(cls, v):
        return v.expanduser() if v is not None else v

    def __init__(self, **data):
        super().__init__(**data)
        # Set derived paths if not provided
        if self.data_dir is None:
            self.data_dir = self.base_dir / "data"
        if self.output_dir is None:
            self.output_dir = self.base_dir / "output"

    def resolve(self, path: Path) -> Path:
        """Resolve a possibly relative path against the base directory."""
        path = Path(path).expanduser()
        if path.is_absolute():
            return path
        return self.base_dir / path

    def create_directories(self):
        """Create all necessary directories."""
        for path in [self.base_dir, self.data_dir, self.output_dir]:
            path.mkdir(parents=True, exist_ok=True)


class WranglingConfig(BaseModel):
    """Parsing and reshaping parameters for raw DGE output."""

    delimiter: Optional[str] = None  # None splits on any whitespace
    comment: str = Field(default="%", min_length=1)
    table_sep: str = "\t"
    output_sep: str = "\t"
    strict_size: bool = False
    duplicate_barcode_policy: DuplicateBarcodePolicy = DuplicateBarcodePolicy.REJECT
    gene_column: str = "ensembl_gene_id"
    display_column: str = "hgnc_symbol"
    barcode_column: str = "Barcode"
    label_column: str = "Well"
    set_column: Optional[str] = None
    set_id: Optional[str] = None
    biomart_dataset: str = "hsapiens_gene_ensembl"


class PCAConfig(BaseModel):
    """PCA vignette parameters."""

    n_components: int = Field(default=10, ge=1)
    min_total_count: int = Field(default=10, ge=0)
    log_transform: bool = True


class SynapseConfig(BaseModel):
    """Access to the Synapse repository hosting the example data."""

    base_url: str = "https://repo-prod.prod.sagebase.org/repo/v1"
    auth_token: Optional[str] = None
    timeout: int = Field(default=300, ge=1)
    chunk_size: int = Field(default=8192, ge=1024)


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(env_prefix="DGE_", env_nested_delimiter="__")

    paths: PathConfig = Field(default_factory=PathConfig)
    wrangling: WranglingConfig = Field(default_factory=WranglingConfig)
    pca: PCAConfig = Field(default_factory=PCAConfig)
    synapse: SynapseConfig = Field(default_factory=SynapseConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file."""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path):
        """Save configuration to YAML file."""
        data = self.model_dump(mode="json", exclude={"synapse": {"auth_token"}})

        with open(path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def initialize(self):
        """Initialize the configuration (create directories, etc.)."""
        self.paths.create_directories()

        config_file = self.paths.base_dir / "config.yaml"
        if not config_file.exists():
            self.to_yaml(config_file)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        default_config_path = Path.home() / "dge_vignettes" / "config.yaml"
        if default_config_path.exists():
            _config = Config.from_yaml(default_config_path)
        else:
            _config = Config()
    return _config


def set_config(config: Config):
    """Set the global configuration instance."""
    global _config
    _config = config


CONFIG_TEMPLATE = """
# DGE vignettes configuration

paths:
  base_dir: ~/dge_vignettes
  # data_dir: ~/dge_vignettes/data
  # output_dir: ~/dge_vignettes/output

wrangling:
  comment: "%"                   # Comment marker of the sparse matrix file
  table_sep: "\\t"                # Separator of annotation and barcode tables
  output_sep: "\\t"               # Separator of the dense output table
  strict_size: false             # Raise instead of warn on entry count mismatch
  duplicate_barcode_policy: reject   # reject | warn | first
  gene_column: ensembl_gene_id
  display_column: hgnc_symbol
  barcode_column: Barcode
  label_column: Well

pca:
  n_components: 10
  min_total_count: 10            # Genes with fewer total counts are dropped
  log_transform: true

synapse:
  timeout: 300
  # auth_token is best supplied through DGE_SYNAPSE__AUTH_TOKEN
"""


if __name__ == "__main__":
    config = get_config()
    print(f"Base dir: {config.paths.base_dir}")
    print(f"Duplicate barcodes: {config.wrangling.duplicate_barcode_policy.value}")
