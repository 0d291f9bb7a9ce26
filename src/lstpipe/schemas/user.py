"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for the names found in Landsat metadata and in typical notebook configs
(e.g., RADIANCE_MULT_BAND_10 → scene calibration, KERNEL_RADIUS →
proximity.kernel_radius).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. A single scene can be given with flat
keys (BANDS, BBOX, ...); several scenes go in the nested ``scenes`` list.
"""

from typing import Literal, Optional, Any
from pydantic import Field, field_validator
from lstpipe.schemas.base import LSTBaseModel
from lstpipe.schemas.param import normalize_band_keys, check_bbox


class UserCalibrationConfig(LSTBaseModel):
    """User-facing calibration block; completeness is checked on resolution."""
    radiance_mult: Optional[float] = None
    radiance_add: Optional[float] = None
    k1: Optional[float] = None
    k2: Optional[float] = None


class UserSceneConfig(LSTBaseModel):
    """User-facing scene definition."""
    label: Optional[str] = None
    bands: Optional[dict[str, str]] = None
    bbox: Optional[tuple[float, float, float, float]] = None
    calibration: Optional[UserCalibrationConfig] = None
    mtl_file: Optional[str] = None

    @field_validator("bands", mode="before")
    @classmethod
    def upper_case_band_ids(cls, v):
        return normalize_band_keys(v)

    @field_validator("label", mode="before")
    @classmethod
    def coerce_label(cls, v):
        """Accept month numbers as labels."""
        if v is not None:
            return str(v)
        return v


class UserEmissivityConfig(LSTBaseModel):
    """User-facing emissivity constants."""
    vegetation: Optional[float] = None
    soil: Optional[float] = None
    roughness: Optional[float] = None


class UserProximityConfig(LSTBaseModel):
    """User-facing proximity config; layers replace the default list wholesale."""
    enabled: Optional[bool] = None
    kernel_radius: Optional[int] = None
    kernel_sigma: Optional[float] = None
    layers: Optional[list[dict[str, Any]]] = None


class UserFeaturesConfig(LSTBaseModel):
    """User-facing feature table config."""
    include_elevation: Optional[bool] = None
    label_column: Optional[str] = None
    filter_column: Optional[str] = None
    filter_op: Optional[Literal[">", ">=", "<", "<="]] = None
    filter_threshold: Optional[float] = None


class UserModelingConfig(LSTBaseModel):
    """User-facing model fitting config."""
    enabled: Optional[bool] = None
    methods: Optional[list[str]] = None
    target: Optional[str] = None
    features: Optional[list[str]] = None
    test_size: Optional[float] = None
    random_state: Optional[int] = None
    hidden_layer_sizes: Optional[tuple[int, ...]] = None
    max_iter: Optional[int] = None

    @field_validator("methods", mode="before")
    @classmethod
    def normalize_methods(cls, v):
        """Normalize method names to lowercase."""
        if isinstance(v, str):
            v = [v]
        if v is not None:
            return [str(m).lower().strip() for m in v]
        return v


class UserConfig(LSTBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    This config is converted to internal overrides during resolution.

    Usage
    -----
        user_cfg = UserConfig(
            base_dir="/data/lst",
            bands={"B4": "LC08_B4.TIF", "B5": "LC08_B5.TIF", ...},
            bbox=(500000, 4000000, 530000, 4030000),
            radiance_mult=3.342e-4,
            radiance_add=0.1,
            k1=774.8853,
            k2=1321.0789,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    base_dir: Optional[str] = Field(None, alias="BASE_DIR")

    # Single scene (flat aliases)
    label: Optional[str] = Field(None, alias="SCENE_LABEL")
    bands: Optional[dict[str, str]] = Field(None, alias="BANDS")
    bbox: Optional[tuple[float, float, float, float]] = Field(None, alias="BBOX")
    mtl_file: Optional[str] = Field(None, alias="MTL_FILE")
    radiance_mult: Optional[float] = Field(None, alias="RADIANCE_MULT_BAND_10")
    radiance_add: Optional[float] = Field(None, alias="RADIANCE_ADD_BAND_10")
    k1: Optional[float] = Field(None, alias="K1_CONSTANT_BAND_10")
    k2: Optional[float] = Field(None, alias="K2_CONSTANT_BAND_10")

    # Auxiliary layers (flat aliases)
    elevation_file: Optional[str] = Field(None, alias="ELEVATION_FILE")
    land_mask_file: Optional[str] = Field(None, alias="LAND_MASK_FILE")

    # Proximity / features / output (flat aliases)
    kernel_radius: Optional[int] = Field(None, alias="KERNEL_RADIUS")
    filter_column: Optional[str] = Field(None, alias="FILTER_COLUMN")
    filter_threshold: Optional[float] = Field(None, alias="FILTER_THRESHOLD")
    output_format: Optional[Literal["csv", "parquet"]] = Field(None, alias="OUTPUT_FORMAT")
    fit_models: Optional[bool] = Field(None, alias="FIT_MODELS")
    thermal_wavelength: Optional[float] = Field(None, alias="THERMAL_WAVELENGTH_M")

    # Nested overrides (advanced users)
    scenes: Optional[list[UserSceneConfig]] = None
    emissivity: Optional[UserEmissivityConfig] = None
    proximity: Optional[UserProximityConfig] = None
    features: Optional[UserFeaturesConfig] = None
    modeling: Optional[UserModelingConfig] = None
    loader: Optional[dict[str, Any]] = None
    auxiliary: Optional[dict[str, Any]] = None
    feature_source: Optional[dict[str, Any]] = None
    output: Optional[dict[str, Any]] = None

    model_config = LSTBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("bands", mode="before")
    @classmethod
    def upper_case_band_ids(cls, v):
        return normalize_band_keys(v)

    @field_validator("bbox")
    @classmethod
    def bbox_is_ordered(cls, v):
        return check_bbox(v)

    @field_validator("label", mode="before")
    @classmethod
    def coerce_label(cls, v):
        """Accept month numbers as labels."""
        if v is not None:
            return str(v)
        return v

    def _flat_scene(self) -> Optional[dict]:
        """Build a scene dict from the flat aliases, or None if none were set."""
        calibration = {
            key: value
            for key, value in (
                ("radiance_mult", self.radiance_mult),
                ("radiance_add", self.radiance_add),
                ("k1", self.k1),
                ("k2", self.k2),
            )
            if value is not None
        }
        if self.bands is None and self.bbox is None and not calibration and self.mtl_file is None:
            return None

        scene = {"label": self.label or "scene"}
        if self.bands is not None:
            scene["bands"] = self.bands
        if self.bbox is not None:
            scene["bbox"] = self.bbox
        if self.mtl_file is not None:
            scene["mtl_file"] = self.mtl_file
        if calibration:
            scene["calibration"] = calibration
        return scene

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        # Scenes: flat scene first, then explicit list
        scenes = []
        flat_scene = self._flat_scene()
        if flat_scene is not None:
            scenes.append(flat_scene)
        if self.scenes is not None:
            offset = len(scenes)
            for i, scene in enumerate(self.scenes):
                scene_dict = scene.model_dump(exclude_none=True)
                scene_dict.setdefault("label", f"scene_{i + offset}")
                scenes.append(scene_dict)
        if scenes:
            overrides["scenes"] = scenes

        # Loader section
        if self.loader is not None:
            overrides["loader"] = dict(self.loader)

        # Thermal section
        if self.thermal_wavelength is not None:
            overrides["thermal"] = {"wavelength_m": self.thermal_wavelength}

        # Emissivity section
        if self.emissivity is not None:
            emissivity = self.emissivity.model_dump(exclude_none=True)
            if emissivity:
                overrides["emissivity"] = emissivity

        # Auxiliary section
        auxiliary = {}
        if self.elevation_file is not None:
            auxiliary["elevation_file"] = self.elevation_file
        if self.land_mask_file is not None:
            auxiliary["land_mask_file"] = self.land_mask_file
        if self.auxiliary is not None:
            auxiliary.update(self.auxiliary)
        if auxiliary:
            overrides["auxiliary"] = auxiliary

        if self.feature_source is not None:
            overrides["feature_source"] = dict(self.feature_source)

        # Proximity section
        proximity = {}
        if self.kernel_radius is not None:
            proximity["kernel_radius"] = self.kernel_radius
        if self.proximity is not None:
            proximity.update(self.proximity.model_dump(exclude_none=True))
        if proximity:
            overrides["proximity"] = proximity

        # Features section
        features = {}
        if self.filter_column is not None:
            features["filter_column"] = self.filter_column
        if self.filter_threshold is not None:
            features["filter_threshold"] = self.filter_threshold
        if self.features is not None:
            features.update(self.features.model_dump(exclude_none=True))
        if features:
            overrides["features"] = features

        # Output section
        output = {}
        if self.output_format is not None:
            output["format"] = self.output_format
        if self.output is not None:
            output.update(self.output)
        if output:
            overrides["output"] = output

        # Modeling section
        modeling = {}
        if self.fit_models is not None:
            modeling["enabled"] = self.fit_models
        if self.modeling is not None:
            modeling.update(self.modeling.model_dump(exclude_none=True))
        if modeling:
            overrides["modeling"] = modeling

        return overrides
