"""
IRT estimation module.

This module provides ability estimation and item calibration for
dichotomous IRT models.

Key components:
- EstimationConfig: Configuration for estimation
- Gauss-Hermite and uniform quadrature rules
- estimate_theta: MLE / EAP ability estimation for one learner
- ItemCalibrator: MML-EM item calibration with an explicit state machine
"""
