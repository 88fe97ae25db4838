"""Detection modules for CheckoutForge."""

from checkoutforge.detectors.fuzzing import AdvancedFuzzingDetector, FuzzingFinding

__all__ = ["AdvancedFuzzingDetector", "FuzzingFinding"]
