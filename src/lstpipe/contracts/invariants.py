"""What each stage guarantees to the next one.

The assert_* checks in this package enforce the machine-checkable subset;
the processor uses STAGE_REQUIREMENTS to decide which stages may be skipped.
"""

PIPELINE_INVARIANTS = {
    "load": [
        "Every required band is present in the BandSet",
        "All bands share shape, affine transform and CRS",
        "Cells outside the bounding box window or the land polygon are no-data",
        "No NaN/Inf is stored in any grid (explicit no-data sentinel only)",
    ],

    "indices": [
        "NDVI, NDBI, NDWI and Albedo exist on the band grid",
        "Normalised difference indices lie in [-1, 1] on valid cells",
        "Zero denominators and no-data operands yield no-data",
    ],

    "lst": [
        "NDVI min/max are computed once over all valid cells before any Pv cell",
        "Emissivity lies in (0, 1) on valid cells",
        "Stage order: radiance, BT, Pv, emissivity, LST",
        "LST is in Celsius; Kelvin = Celsius + 273.15 exactly",
    ],

    "proximity": [
        "Every layer is on the band grid and masked to land",
        "Density layers with zscore normalisation have mean 0 / std 1 on valid cells",
    ],

    "assemble": [
        "Columns: X, Y, then one per stacked grid in input order",
        "Row count equals cells valid in every grid simultaneously",
        "No NaN/Inf in any numeric column",
    ],
}

# Which stages are optional vs required
STAGE_REQUIREMENTS = {
    "load": "REQUIRED",
    "indices": "REQUIRED",
    "lst": "REQUIRED",
    "proximity": "OPTIONAL",   # proximity.enabled
    "elevation": "OPTIONAL",   # auxiliary.elevation_file
    "assemble": "REQUIRED",
    "modeling": "OPTIONAL",    # modeling.enabled
}
