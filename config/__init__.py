# config package: authoritative source for rubric definitions.
#
# Sub-modules:
#   rubric_tables.py: versioned question / option / score tables (V1, V2)
#
# Engine-level thresholds live beside the code that uses them:
#   src/scoring/config.py  : exclusion markers, default rubric version
#   src/analysis/config.py : agreement thresholds, tier bands, output paths
