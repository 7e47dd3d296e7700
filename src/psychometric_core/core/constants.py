MISSING_VALUE = -1

# Ability scale. Estimates live in THETA_BOUNDS; anything reported to a
# learner is clipped to REPORTING_BOUNDS.
THETA_BOUNDS = (-4.0, 4.0)
REPORTING_BOUNDS = (-3.0, 3.0)

# Declared item parameter ranges.
DISCRIMINATION_RANGE = (0.2, 3.0)
DIFFICULTY_RANGE = (-4.0, 4.0)
GUESSING_RANGE = (0.0, 0.5)

# Logistic exponent clipping to prevent overflow in exp().
EXPONENT_CLIP_MIN = -35.0
EXPONENT_CLIP_MAX = 35.0
