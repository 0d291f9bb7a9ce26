"""lstpipe User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Expert defaults live in lstpipe.schemas.param.

Usage:
    python scripts/run_lst_pipeline.py scripts/user_config.py
    python scripts/run_lst_pipeline.py scripts/user_config.py --scene 08 --format parquet
"""

DATA = "/data/landsat/crete"

CONFIG = {
    # ========================================================================
    # OUTPUT
    # ========================================================================
    "BASE_DIR": "./lstpipe_output",
    "OUTPUT_FORMAT": "csv",   # "csv" or "parquet"

    # ========================================================================
    # SCENES (one per month; the label becomes the Month column)
    # ========================================================================
    "scenes": [
        {
            "label": "07",
            "bands": {b: f"{DATA}/LC08_20230712_{b}.TIF"
                      for b in ("B2", "B3", "B4", "B5", "B6", "B7", "B10")},
            "bbox": (560000, 3870000, 620000, 3920000),  # scene CRS (UTM 35N)
            "mtl_file": f"{DATA}/LC08_20230712_MTL.txt",
        },
        {
            "label": "08",
            "bands": {b: f"{DATA}/LC08_20230813_{b}.TIF"
                      for b in ("B2", "B3", "B4", "B5", "B6", "B7", "B10")},
            "bbox": (560000, 3870000, 620000, 3920000),
            "calibration": {
                "radiance_mult": 3.342e-4,
                "radiance_add": 0.1,
                "k1": 774.8853,
                "k2": 1321.0789,
            },
        },
    ],

    # ========================================================================
    # AUXILIARY LAYERS
    # ========================================================================
    "ELEVATION_FILE": f"{DATA}/dem_30m.tif",
    "LAND_MASK_FILE": f"{DATA}/island.gpkg",

    # ========================================================================
    # PROXIMITY / EXPOSURE
    # ========================================================================
    "KERNEL_RADIUS": 10,      # Gaussian kernel radius in cells
    "proximity": {
        "layers": [
            {"name": "Coast_Distance", "kind": "distance", "source": "land_boundary"},
            {"name": "Road_Distance", "kind": "distance", "tags": {"highway": True}},
            {"name": "Tourism_Exposure", "kind": "density", "tags": {"tourism": True}},
            {"name": "Building_Exposure", "kind": "density", "tags": {"building": True}},
        ],
    },

    # ========================================================================
    # FEATURE TABLE / MODELS
    # ========================================================================
    "FILTER_COLUMN": None,    # e.g. "LST" to keep only rows above a threshold
    "FILTER_THRESHOLD": None,
    "FIT_MODELS": False,
}
