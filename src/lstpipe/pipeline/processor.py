"""Per-scene LST processing.

Runs one Landsat scene through the explicit stage graph:

    load -> indices -> lst -> [proximity] -> [elevation] -> assemble

and returns its feature table. Every stage is a pure call into the
``lstpipe.geo`` modules; the processor only wires them together, checks
stage contracts and persists lineage.
"""

import logging
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

import geopandas as gpd
import xarray as xr

from lstpipe.contracts import (
    ContractViolation,
    assert_band_set,
    assert_indices,
    assert_lst,
    assert_feature_table,
    require,
)
from lstpipe.contracts.invariants import STAGE_REQUIREMENTS
from lstpipe.core.errors import ConfigurationError, LSTPipelineError
from lstpipe.core.grid import Grid
from lstpipe.core.vector import VectorLayer
from lstpipe.geo.features import FeatureTable, FeatureTableAssembler
from lstpipe.geo.feature_source import FileFeatureSource, OSMFeatureSource
from lstpipe.geo.indices import IndexCalculator
from lstpipe.geo.loader import BandLoader
from lstpipe.geo.lst import LSTChain, LSTResult
from lstpipe.geo.metadata import read_mtl_calibration
from lstpipe.geo.proximity import ProximityEngine

if TYPE_CHECKING:
    from lstpipe.schemas import InternalConfig
    from lstpipe.schemas.internal import InternalSceneConfig

__all__ = ['SceneProcessor', 'SceneResult']

logger = logging.getLogger(__name__)


@dataclass
class SceneResult:
    """Everything one scene produced."""

    label: str
    table: FeatureTable
    grids: "OrderedDict[str, Grid]"
    lst: LSTResult
    grid_path: Optional[Path] = None
    stages: List[str] = field(default_factory=list)


class SceneProcessor:
    """Process Landsat scenes into feature tables.

    **Stages (in order):**

    1. **load**: read and crop bands, apply the land mask (optional).
    2. **indices**: NDVI, NDBI, NDWI, Albedo.
    3. **lst**: calibration (inline or MTL), then the LST chain.
    4. **proximity** (optional): distance/density layers from vector features.
    5. **elevation** (optional): DEM resampled onto the band grid.
    6. **assemble**: complete-case flattening plus the optional value filter.

    Any ``LSTPipelineError`` raised inside a stage is tagged with the stage
    name and logged at CRITICAL before it propagates. Any other library
    error (network, I/O) is wrapped in an ``LSTPipelineError`` carrying the
    stage, with the original as ``__cause__``. Contract violations
    propagate unchanged: they indicate a bug, not bad input.

    **Output Files:**

    - grids/<label>_grids.nc: every derived grid of the scene
      (when ``output.save_grids`` is set)

    Example usage (typically called by orchestrator)::

        processor = SceneProcessor(config, output_dirs)
        result = processor.process(config.scenes[0])
        result.table.frame.head()
    """

    def __init__(self, config: "InternalConfig", output_dirs: Optional[Dict[str, Path]] = None,
                 feature_source=None):
        """Initialize processor with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        output_dirs : dict, optional
            From setup_output_directories(). Without it no lineage is written.
        feature_source : optional
            Object with ``fetch(name, bbox, crs, tags)`` used for ``osm``
            layers. Defaults to OSMFeatureSource.
        """
        self.config = config
        self.output_dirs = output_dirs

        self.loader = BandLoader(config)
        self.index_calculator = IndexCalculator()
        self.proximity_engine = ProximityEngine(config)
        self.assembler = FeatureTableAssembler(config.features.label_column)
        self.osm_source = feature_source if feature_source is not None else OSMFeatureSource(config)

    @contextmanager
    def _stage(self, name: str, label: str, completed: List[str]):
        logger.info("[%s] stage: %s", label, name)
        try:
            yield
        except LSTPipelineError as e:
            if e.stage is None:
                e.stage = name
            logger.critical("Scene %s failed at stage '%s': %s", label, name, e.message)
            raise
        except ContractViolation as e:
            logger.critical("CRITICAL: Pipeline contract violated at stage '%s': %s", name, e)
            logger.critical("This indicates a bug in pipeline logic. Stopping pipeline.")
            raise
        except Exception as e:
            message = f"{type(e).__name__}: {e}"
            logger.critical("Scene %s failed at stage '%s': %s", label, name, message)
            raise LSTPipelineError(message, stage=name) from e
        completed.append(name)

    @staticmethod
    def _skip(name: str, label: str, reason: str):
        require(STAGE_REQUIREMENTS.get(name) == "OPTIONAL",
                f"Stage contract: required stage '{name}' cannot be skipped")
        logger.info("[%s] skipping optional stage %s (%s)", label, name, reason)

    def process(self, scene: "InternalSceneConfig") -> SceneResult:
        """Run all stages for one scene."""
        cfg = self.config
        label = scene.label
        stages: List[str] = []
        logger.info("Processing scene: %s", label)

        with self._stage("load", label, stages):
            bands = self.loader.load(scene.bands, scene.bbox)
            template = bands.template
            land_layer, land_grid = self._load_land(template)
            if land_layer is not None:
                bands = self.loader.apply_land_mask(bands, land_layer)
                template = bands.template
            assert_band_set(bands, cfg.loader.required_bands)

        with self._stage("indices", label, stages):
            indices = self.index_calculator.compute(bands)
            assert_indices(indices)

        with self._stage("lst", label, stages):
            calibration = scene.calibration
            if calibration is None:
                calibration = read_mtl_calibration(scene.mtl_file, cfg.loader.thermal_band)
            chain = LSTChain(calibration, cfg.emissivity, cfg.thermal)
            lst = chain.derive(bands[cfg.loader.thermal_band], indices["NDVI"])
            assert_lst(lst, template)

        grids: "OrderedDict[str, Grid]" = OrderedDict()
        grids["LST"] = lst.lst
        for name in ("NDVI", "NDBI", "NDWI", "Albedo"):
            grids[name] = indices[name]

        if cfg.proximity.enabled and cfg.proximity.layers:
            with self._stage("proximity", label, stages):
                layers = self._fetch_layers(scene.bbox, template, land_layer)
                grids.update(self.proximity_engine.build_layers(layers, template, land_grid))
        else:
            self._skip("proximity", label, "disabled or no layers configured")

        if cfg.features.include_elevation and cfg.auxiliary.elevation_file:
            with self._stage("elevation", label, stages):
                grids["Elevation"] = self.loader.load_auxiliary(
                    cfg.auxiliary.elevation_file, template, cfg.auxiliary.elevation_resampling
                )
        else:
            self._skip("elevation", label, "no elevation_file or include_elevation off")

        with self._stage("assemble", label, stages):
            table = self.assembler.assemble(list(grids.items()), label=label)
            if cfg.features.filter_column is not None and cfg.features.filter_threshold is not None:
                table = table.filter(cfg.features.filter_column, cfg.features.filter_op,
                                     cfg.features.filter_threshold)
            assert_feature_table(table, expected_columns=list(grids))

        grid_path = None
        if cfg.output.save_grids and self.output_dirs is not None:
            grid_path = self._save_grids_netcdf(scene, grids, lst)

        logger.info("Scene %s done: %d rows, columns %s", label, len(table), table.columns)
        return SceneResult(label=label, table=table, grids=grids, lst=lst,
                           grid_path=grid_path, stages=stages)

    # ------------------------------------------------------------------
    # Vector inputs
    # ------------------------------------------------------------------

    def _load_land(self, template: Grid) -> Tuple[Optional[VectorLayer], Optional[Grid]]:
        path = self.config.auxiliary.land_mask_file
        if not path:
            return None, None
        land_layer = FileFeatureSource(path).fetch("land", crs=template.crs)
        return land_layer, self.loader.land_mask_grid(land_layer, template)

    def _fetch_layers(self, bbox, template: Grid,
                      land_layer: Optional[VectorLayer]) -> List[Tuple[object, VectorLayer]]:
        layers = []
        for layer_cfg in self.config.proximity.layers:
            if layer_cfg.source == "osm":
                layer = self.osm_source.fetch(layer_cfg.name, bbox, template.crs, layer_cfg.tags)
            elif layer_cfg.source == "file":
                layer = FileFeatureSource(layer_cfg.source_file).fetch(
                    layer_cfg.name, bbox, template.crs, layer_cfg.tags
                )
            elif layer_cfg.source == "land_boundary":
                if land_layer is None:
                    raise ConfigurationError(
                        f"Layer '{layer_cfg.name}' uses the land boundary but no land_mask_file is set"
                    )
                boundary = gpd.GeoDataFrame(geometry=land_layer.frame.geometry.boundary,
                                            crs=land_layer.crs)
                layer = VectorLayer(layer_cfg.name, boundary)
            else:
                raise ConfigurationError(f"Unknown layer source: {layer_cfg.source!r}")
            layers.append((layer_cfg, layer))
        return layers

    # ------------------------------------------------------------------
    # Lineage
    # ------------------------------------------------------------------

    def _save_grids_netcdf(self, scene, grids: "OrderedDict[str, Grid]",
                           lst: LSTResult) -> Optional[Path]:
        """Save every derived grid of the scene to one NetCDF file."""
        from lstpipe.setup_directories import get_grid_path

        try:
            nc_path = get_grid_path(self.output_dirs, scene.label)

            variables = {name: grid.to_dataarray(name) for name, grid in grids.items()}
            variables["BT"] = lst.brightness_temperature.to_dataarray("BT")
            variables["Pv"] = lst.fractional_vegetation.to_dataarray("Pv")
            variables["Emissivity"] = lst.emissivity.to_dataarray("Emissivity")
            ds = xr.Dataset(variables)

            ds.attrs.update({
                "scene": scene.label,
                "ndvi_min": lst.ndvi_min,
                "ndvi_max": lst.ndvi_max,
                "crs": lst.lst.crs.to_wkt(),
                "description": "Landsat 8 derived grids (no-data as NaN)",
            })

            encoding = {var: {"zlib": True, "complevel": 9} for var in ds.data_vars}
            ds.to_netcdf(nc_path, mode="w", encoding=encoding, compute=True)
            logger.info("Grids saved: %s [%s]", nc_path.name, ", ".join(ds.data_vars))
            return nc_path

        except (OSError, ValueError, RuntimeError) as e:
            logger.warning("Could not save grids NetCDF for %s: %s", scene.label, e)
            return None
