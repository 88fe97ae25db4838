"""Evolutionary payload fuzzing for CheckoutForge."""

from checkoutforge.fuzzing.genome import (
    UNDEFINED,
    Encoding,
    InjectionLayer,
    Payload,
    ValueKind,
    Wrapper,
    render,
    to_text,
    value_kind,
)
from checkoutforge.fuzzing.seeds import SeedGenerator
from checkoutforge.fuzzing.fitness import FitnessEvaluator, FitnessFactors, FitnessResult
from checkoutforge.fuzzing.population import PopulationManager
from checkoutforge.fuzzing.evolution import (
    EvolutionaryFuzzer,
    EvolutionState,
    FuzzingResult,
    TerminationReason,
    evolve,
    evolve_sync,
)

__all__ = [
    # Genome
    "UNDEFINED",
    "Encoding",
    "InjectionLayer",
    "Payload",
    "ValueKind",
    "Wrapper",
    "render",
    "to_text",
    "value_kind",
    # Operators
    "SeedGenerator",
    "FitnessEvaluator",
    "FitnessFactors",
    "FitnessResult",
    "PopulationManager",
    # Controller
    "EvolutionaryFuzzer",
    "EvolutionState",
    "FuzzingResult",
    "TerminationReason",
    "evolve",
    "evolve_sync",
]
