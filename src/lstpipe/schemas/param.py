"""ParamConfig: Expert defaults for the lstpipe pipeline.

This module defines the complete, physically-validated default configuration.
ALL pipeline parameters must have defaults here. No runtime code should define
fallback values - this is the single source of truth for defaults.

Scene-specific inputs (band files, bounding box, calibration constants) have
no meaningful default; they arrive through UserConfig and are checked during
resolution.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional, Union
from pydantic import Field, field_validator, model_validator
from lstpipe.schemas.base import LSTBaseModel


TagValue = Union[bool, str, list[str]]


def normalize_band_keys(bands: Optional[dict]) -> Optional[dict]:
    """Upper-case band ids so 'b4', 'B4' and ' b4 ' all mean Band 4."""
    if bands is None:
        return None
    return {str(k).strip().upper(): str(v) for k, v in bands.items()}


def check_bbox(bbox):
    """Validate (left, bottom, right, top) ordering."""
    if bbox is None:
        return bbox
    left, bottom, right, top = bbox
    if left >= right or bottom >= top:
        raise ValueError(
            f"bbox must be (left, bottom, right, top) with left < right and bottom < top, got {bbox}"
        )
    return bbox


# =============================================================================
# Nested Configuration Models
# =============================================================================

class CalibrationConfig(LSTBaseModel):
    """Per-scene thermal calibration constants (Landsat MTL, band 10)."""
    radiance_mult: float = Field(..., gt=0, description="RADIANCE_MULT_BAND_10 (M_L)")
    radiance_add: float = Field(..., description="RADIANCE_ADD_BAND_10 (A_L)")
    k1: float = Field(..., gt=0, description="K1_CONSTANT_BAND_10")
    k2: float = Field(..., gt=0, description="K2_CONSTANT_BAND_10")


class SceneConfig(LSTBaseModel):
    """One Landsat 8 acquisition clipped to a bounding box."""
    label: str = Field(..., min_length=1, description="Scene label, written to the Month column")
    bands: dict[str, str] = Field(..., description="Band id -> GeoTIFF path")
    bbox: tuple[float, float, float, float] = Field(..., description="(left, bottom, right, top) in scene CRS")
    calibration: Optional[CalibrationConfig] = None
    mtl_file: Optional[str] = None

    @field_validator("bands", mode="before")
    @classmethod
    def upper_case_band_ids(cls, v):
        return normalize_band_keys(v)

    @field_validator("bbox")
    @classmethod
    def bbox_is_ordered(cls, v):
        return check_bbox(v)

    @model_validator(mode="after")
    def calibration_source_present(self):
        """Calibration comes inline or from an MTL file; one of them is required."""
        if self.calibration is None and self.mtl_file is None:
            raise ValueError(
                f"Scene '{self.label}' needs calibration constants or an mtl_file"
            )
        return self


class LoaderConfig(LSTBaseModel):
    """Band loading and alignment."""
    nodata: float = Field(-9999.0, description="No-data sentinel for every derived grid")
    dn_fill: Optional[float] = Field(0.0, description="Digital number used as fill in source bands")
    resampling: Literal["bilinear", "nearest", "cubic"] = "bilinear"
    required_bands: tuple[str, ...] = ("B2", "B3", "B4", "B5", "B6", "B7", "B10")
    thermal_band: str = "B10"

    @field_validator("required_bands", mode="before")
    @classmethod
    def upper_case_required(cls, v):
        return tuple(str(b).strip().upper() for b in v)

    @field_validator("thermal_band", mode="before")
    @classmethod
    def upper_case_thermal(cls, v):
        return str(v).strip().upper()


class ThermalConfig(LSTBaseModel):
    """Sensor constants for the emissivity correction."""
    wavelength_m: float = Field(10.895e-6, gt=0, description="Effective wavelength of band 10 in metres")


class EmissivityConfig(LSTBaseModel):
    """Surface emissivity model constants."""
    vegetation: float = Field(0.984, gt=0, lt=1)
    soil: float = Field(0.964, gt=0, lt=1)
    roughness: float = Field(0.005, ge=0, lt=1)


class AuxiliaryConfig(LSTBaseModel):
    """External layers aligned onto the band grid."""
    elevation_file: Optional[str] = None
    elevation_resampling: Literal["bilinear", "nearest", "cubic"] = "bilinear"
    land_mask_file: Optional[str] = None
    land_mask_all_touched: bool = False


class FeatureSourceConfig(LSTBaseModel):
    """OpenStreetMap query settings."""
    requests_timeout: int = Field(180, ge=1)
    use_cache: bool = True


class ProximityLayerConfig(LSTBaseModel):
    """One proximity or exposure covariate."""
    name: str = Field(..., min_length=1, description="Output column name")
    kind: Literal["distance", "density"]
    tags: dict[str, TagValue] = Field(default_factory=dict)
    source: Literal["osm", "file", "land_boundary"] = "osm"
    source_file: Optional[str] = None
    kernel_radius: Optional[int] = Field(None, ge=1, description="Gaussian kernel radius in cells")
    normalize: Optional[Literal["none", "minmax", "zscore"]] = None
    all_touched: bool = True

    @model_validator(mode="after")
    def source_is_complete(self):
        if self.source == "file" and not self.source_file:
            raise ValueError(f"Layer '{self.name}': source 'file' requires source_file")
        if self.source == "osm" and not self.tags:
            raise ValueError(f"Layer '{self.name}': source 'osm' requires tags")
        return self


def default_proximity_layers() -> list[ProximityLayerConfig]:
    return [
        ProximityLayerConfig(name="Coast_Distance", kind="distance",
                             tags={"natural": "coastline"}),
        ProximityLayerConfig(name="Road_Distance", kind="distance",
                             tags={"highway": True}),
        ProximityLayerConfig(name="Tourism_Exposure", kind="density",
                             tags={"tourism": True}),
        ProximityLayerConfig(name="Building_Exposure", kind="density",
                             tags={"building": True}),
    ]


class ProximityConfig(LSTBaseModel):
    """Proximity/heatmap engine configuration."""
    enabled: bool = True
    kernel_radius: int = Field(10, ge=1, description="Default Gaussian kernel radius in cells")
    kernel_sigma: Optional[float] = Field(None, gt=0, description="Gaussian sigma in cells (default radius/3)")
    layers: list[ProximityLayerConfig] = Field(default_factory=default_proximity_layers)


class FeaturesConfig(LSTBaseModel):
    """Feature table assembly."""
    include_elevation: bool = True
    label_column: str = "Month"
    filter_column: Optional[str] = None
    filter_op: Literal[">", ">=", "<", "<="] = ">"
    filter_threshold: Optional[float] = None


class OutputConfig(LSTBaseModel):
    """Output file configuration."""
    format: Literal["csv", "parquet"] = "csv"
    compression: Literal["snappy", "gzip", "none"] = "snappy"
    table_name: str = "feature_table"
    save_grids: bool = True


class ModelingConfig(LSTBaseModel):
    """Regression / neural network fitting on the feature table."""
    enabled: bool = False
    methods: list[Literal["linear", "mlp"]] = Field(default_factory=lambda: ["linear"])
    target: str = "LST"
    features: Optional[list[str]] = None
    test_size: float = Field(0.2, gt=0, lt=1)
    random_state: int = 42
    hidden_layer_sizes: tuple[int, ...] = (64, 32)
    max_iter: int = Field(1000, ge=1)


class LoggingConfig(LSTBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(LSTBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    base_dir: str = "lstpipe_output"
    scenes: list[SceneConfig] = Field(default_factory=list)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    thermal: ThermalConfig = Field(default_factory=ThermalConfig)
    emissivity: EmissivityConfig = Field(default_factory=EmissivityConfig)
    auxiliary: AuxiliaryConfig = Field(default_factory=AuxiliaryConfig)
    feature_source: FeatureSourceConfig = Field(default_factory=FeatureSourceConfig)
    proximity: ProximityConfig = Field(default_factory=ProximityConfig)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    modeling: ModelingConfig = Field(default_factory=ModelingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
