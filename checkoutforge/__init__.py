"""
CheckoutForge - evolutionary payload fuzzing for e-commerce checkout flows.

Searches for exploit-triggering inputs to a single request parameter with a
genetic algorithm:
- Type and name aware seeds (numeric boundaries, injection probes, discount codes)
- Genomes rendered through encodings, structural wrappers and injection layers
- Seven-factor fitness scored against a baseline response
- Selection, crossover, mutation and diversity injection every generation
- Time, stagnation and exploit-count stopping rules
"""

__version__ = "1.0.0"
__author__ = "CheckoutForge Team"

# Target model
from checkoutforge.models import Endpoint, Parameter, ParameterType, ParameterLocation

# Configuration
from checkoutforge.config import CheckoutForgeConfig, EvolutionSettings, get_preset

# The engine
from checkoutforge.fuzzing import (
    EvolutionaryFuzzer,
    FuzzingResult,
    Payload,
    evolve,
    evolve_sync,
)

# Detector wrapper
from checkoutforge.detectors import AdvancedFuzzingDetector, FuzzingFinding

__all__ = [
    # Model
    "Endpoint",
    "Parameter",
    "ParameterType",
    "ParameterLocation",
    # Config
    "CheckoutForgeConfig",
    "EvolutionSettings",
    "get_preset",
    # Engine
    "EvolutionaryFuzzer",
    "FuzzingResult",
    "Payload",
    "evolve",
    "evolve_sync",
    # Detector
    "AdvancedFuzzingDetector",
    "FuzzingFinding",
    # Meta
    "__version__",
]
