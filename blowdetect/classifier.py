"""
Breath/blow classifier
Compares one frame's features against the calibrated noise floor using
baseline-relative thresholds with absolute floors
"""

from .config import (
    STRONG_HISS_MARGIN, TILT_MARGIN, TILT_FLOOR,
    ENERGY_MARGIN, ENERGY_FLOOR, LOUD_ENERGY_MARGIN
)


class BlowClassifier:
    """
    Stateless breath-vs-ambient decision rule

    Two independent triggers, either of which fires:
    - strong hiss: tilt alone far above the baseline tilt
    - combined: tilt moderately raised and energy raised

    The floors keep a near-silent room from making the detector hair-trigger.
    The trigger latch belongs to the acquisition loop, not here.
    """

    def __init__(self, strong_hiss_margin=STRONG_HISS_MARGIN, tilt_margin=TILT_MARGIN,
                 tilt_floor=TILT_FLOOR, energy_margin=ENERGY_MARGIN,
                 energy_floor=ENERGY_FLOOR, loud_energy_margin=LOUD_ENERGY_MARGIN):
        self.strong_hiss_margin = float(strong_hiss_margin)
        self.tilt_margin = float(tilt_margin)
        self.tilt_floor = float(tilt_floor)
        self.energy_margin = float(energy_margin)
        self.energy_floor = float(energy_floor)
        self.loud_energy_margin = float(loud_energy_margin)

    def strong_hiss(self, features, baseline):
        return features.tilt > baseline.tilt + self.strong_hiss_margin

    def combined(self, features, baseline):
        tilt_threshold = max(baseline.tilt + self.tilt_margin, self.tilt_floor)
        if not features.tilt > tilt_threshold:
            return False

        energy_threshold = max(baseline.energy + self.energy_margin, self.energy_floor)
        return (features.energy > energy_threshold
                or features.energy > baseline.energy + self.loud_energy_margin)

    def classify(self, features, baseline):
        """
        Decide whether a frame is a breath/blow

        Args:
            features: FeaturePair for the current frame
            baseline: Baseline from calibration

        Returns:
            bool: True if either trigger fires
        """
        return self.strong_hiss(features, baseline) or self.combined(features, baseline)

    def thresholds(self, baseline):
        """
        Effective thresholds for a baseline (for status reporting)
        """
        return {
            "strong_hiss_tilt": baseline.tilt + self.strong_hiss_margin,
            "tilt": max(baseline.tilt + self.tilt_margin, self.tilt_floor),
            "energy": max(baseline.energy + self.energy_margin, self.energy_floor),
            "loud_energy": baseline.energy + self.loud_energy_margin,
        }
