# Edge band widths (columns) for threshold estimation and the shift sweep
MARGIN1 = 5
MARGIN2 = 30

# Threshold fractions
TH1 = 0.7
TH2 = 0.04

# Distance penalty weights for pass 1 / pass 2
SMOOTH1 = 10.0
SMOOTH2 = 30.0

# Max column shift between adjacent rows
GAP = 7

# Refinement band
EXTRA = 0
MINUS = 0
ETH = 0.0
EXTEND = True

# Pass 2 cost shape
NDISC = 0.4
SCOST2 = 0.0
GTH2 = False

# Coverage fractions for white/black contour averages
WCTRPCT = 0.9
CTRPCT = 0.8

# Erosion kernel size for the per-row pass 2 threshold
MINK = 3

# Gradient window half-width for the shift finder
W = 2

# Pass 1 is fixed: plain discount, no monotonic clamp, no step cost
PASS1_NDISC = 1.0
PASS1_SCOST = 0.0

# Post-processing: box extension and dilation kernel, in pixels
CONTRAST_EXT = 5

# Batch
DEFAULT_MAX_WORKERS = 4

# Overlay rendering
OVERLAY_PROB_SCALE = 255.0
OVERLAY_LINE_VALUE = -255.0
