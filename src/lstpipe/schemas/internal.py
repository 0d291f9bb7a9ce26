"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional, Union
from pydantic import Field, ConfigDict, model_validator
from lstpipe.schemas.base import LSTBaseModel


TagValue = Union[bool, str, list[str]]


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalCalibrationConfig(LSTBaseModel):
    """Runtime thermal calibration constants."""
    radiance_mult: float = Field(gt=0)
    radiance_add: float
    k1: float = Field(gt=0)
    k2: float = Field(gt=0)


class InternalSceneConfig(LSTBaseModel):
    """Runtime scene definition.

    Note: calibration may still be None when mtl_file is set; the processor
    reads the MTL file before the LST stage.
    """
    label: str
    bands: dict[str, str]
    bbox: tuple[float, float, float, float]
    calibration: Optional[InternalCalibrationConfig]
    mtl_file: Optional[str]

    @model_validator(mode="after")
    def calibration_source_present(self):
        if self.calibration is None and self.mtl_file is None:
            raise ValueError(
                f"Scene '{self.label}' needs calibration constants or an mtl_file"
            )
        return self


class InternalLoaderConfig(LSTBaseModel):
    """Runtime loader configuration."""
    nodata: float
    dn_fill: Optional[float]
    resampling: Literal["bilinear", "nearest", "cubic"]
    required_bands: tuple[str, ...]
    thermal_band: str


class InternalThermalConfig(LSTBaseModel):
    """Runtime sensor constants."""
    wavelength_m: float = Field(gt=0)


class InternalEmissivityConfig(LSTBaseModel):
    """Runtime emissivity constants."""
    vegetation: float = Field(gt=0, lt=1)
    soil: float = Field(gt=0, lt=1)
    roughness: float = Field(ge=0, lt=1)


class InternalAuxiliaryConfig(LSTBaseModel):
    """Runtime auxiliary layer configuration."""
    elevation_file: Optional[str]
    elevation_resampling: Literal["bilinear", "nearest", "cubic"]
    land_mask_file: Optional[str]
    land_mask_all_touched: bool


class InternalFeatureSourceConfig(LSTBaseModel):
    """Runtime OpenStreetMap query settings."""
    requests_timeout: int
    use_cache: bool


class InternalProximityLayerConfig(LSTBaseModel):
    """Runtime proximity layer: radius and normalisation always explicit."""
    name: str
    kind: Literal["distance", "density"]
    tags: dict[str, TagValue]
    source: Literal["osm", "file", "land_boundary"]
    source_file: Optional[str]
    kernel_radius: int = Field(ge=1)
    normalize: Literal["none", "minmax", "zscore"]
    all_touched: bool


class InternalProximityConfig(LSTBaseModel):
    """Runtime proximity engine configuration."""
    enabled: bool
    kernel_radius: int
    kernel_sigma: Optional[float]
    layers: list[InternalProximityLayerConfig]


class InternalFeaturesConfig(LSTBaseModel):
    """Runtime feature table configuration."""
    include_elevation: bool
    label_column: str
    filter_column: Optional[str]
    filter_op: Literal[">", ">=", "<", "<="]
    filter_threshold: Optional[float]


class InternalOutputConfig(LSTBaseModel):
    """Runtime output configuration."""
    format: Literal["csv", "parquet"]
    compression: Literal["snappy", "gzip", "none"]
    table_name: str
    save_grids: bool


class InternalModelingConfig(LSTBaseModel):
    """Runtime model fitting configuration."""
    enabled: bool
    methods: list[Literal["linear", "mlp"]]
    target: str
    features: Optional[list[str]]
    test_size: float
    random_state: int
    hidden_layer_sizes: tuple[int, ...]
    max_iter: int


class InternalLoggingConfig(LSTBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(LSTBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.nodata = config.loader.nodata  # NOT .get()
            self.eps_soil = config.emissivity.soil

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    base_dir: str
    scenes: list[InternalSceneConfig]
    loader: InternalLoaderConfig
    thermal: InternalThermalConfig
    emissivity: InternalEmissivityConfig
    auxiliary: InternalAuxiliaryConfig
    feature_source: InternalFeatureSourceConfig
    proximity: InternalProximityConfig
    features: InternalFeaturesConfig
    output: InternalOutputConfig
    modeling: InternalModelingConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
