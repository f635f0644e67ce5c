"""Bob: adaptive calorie target calibration from weight and food logs."""

__version__ = "0.1.0"
