"""
Population dynamics: selection, crossover, mutation and replenishment.

All randomness comes from the random.Random handed in, so a seeded source
gives a reproducible search.
"""

import math
import random
from dataclasses import replace
from typing import Any, Callable

from checkoutforge.config import EvolutionSettings
from checkoutforge.models import Parameter
from checkoutforge.fuzzing.genome import (
    Encoding,
    InjectionLayer,
    Payload,
    ValueKind,
    Wrapper,
    new_payload_id,
    to_text,
    value_kind,
)
from checkoutforge.fuzzing.seeds import SeedGenerator


MUTATION_STRATEGIES = ["encoding", "wrapper", "boundary", "injection"]

INJECTION_LAYERS = [
    InjectionLayer.SQL,
    InjectionLayer.NOSQL,
    InjectionLayer.TEMPLATE,
    InjectionLayer.COMMAND,
]

BOUNDARY_EPSILON = 0.00001

# payload id -> score; missing ids count as 0
ScoreLookup = Callable[[str], float]


def add_injection_layer(value: Any, layer: InjectionLayer) -> Any:
    """Wrap a value in the probe shape for an injection layer."""
    text = to_text(value)
    if layer is InjectionLayer.SQL:
        return f"{text}' OR '1'='1"
    if layer is InjectionLayer.NOSQL:
        return {"$gt": text}
    if layer is InjectionLayer.TEMPLATE:
        return "${" + text + "}"
    if layer is InjectionLayer.COMMAND:
        return f"{text}; ls -la"
    return value


class PopulationManager:
    """Applies the genetic operators to a population of payloads."""

    def __init__(
        self,
        settings: EvolutionSettings | None = None,
        rng: random.Random | None = None,
        seed_generator: SeedGenerator | None = None,
    ):
        self.settings = settings or EvolutionSettings()
        self.rng = rng or random.Random(self.settings.seed)
        self.seed_generator = seed_generator or SeedGenerator(self.settings.encoded_seed_count)

    @property
    def survivor_count(self) -> int:
        return math.floor(self.settings.population_size * self.settings.survival_rate)

    def select_top(self, population: list[Payload], score_of: ScoreLookup) -> list[Payload]:
        """Keep the best floor(population_size * survival_rate) genomes."""
        ranked = sorted(population, key=lambda p: score_of(p.id), reverse=True)
        return ranked[:self.survivor_count]

    def crossover(self, parents: list[Payload]) -> list[Payload]:
        """
        Recombine disjoint pairs of parents.

        Child A keeps value and wrapper from the first parent and takes
        encoding and injection layer from the second; child B mirrors it.
        """
        offspring: list[Payload] = []

        for i in range(0, len(parents) - 1, 2):
            if self.rng.random() > self.settings.crossover_rate:
                continue

            first, second = parents[i], parents[i + 1]
            generation = max(first.generation, second.generation) + 1

            offspring.append(Payload(
                id=new_payload_id(self.rng),
                value=first.value,
                encoding=second.encoding,
                wrapper=first.wrapper,
                injection_layer=second.injection_layer,
                mutations=[*first.mutations, "crossover"],
                generation=generation,
            ))
            offspring.append(Payload(
                id=new_payload_id(self.rng),
                value=second.value,
                encoding=first.encoding,
                wrapper=second.wrapper,
                injection_layer=first.injection_layer,
                mutations=[*second.mutations, "crossover"],
                generation=generation,
            ))

        return offspring

    def mutate(self, payloads: list[Payload]) -> list[Payload]:
        """Mutate each payload with probability mutation_rate."""
        mutated = []
        for payload in payloads:
            if self.rng.random() > self.settings.mutation_rate:
                mutated.append(payload)
            else:
                strategy = self.rng.choice(MUTATION_STRATEGIES)
                mutated.append(self.apply_mutation(payload, strategy))
        return mutated

    def apply_mutation(self, payload: Payload, strategy: str) -> Payload:
        """
        Apply one named strategy. The result is a new genome with a fresh id,
        except for a boundary mutation of a non-numeric value, which returns
        the genome itself.
        """
        if strategy == "boundary" and payload.kind is not ValueKind.NUMBER:
            return payload

        changes: dict[str, Any] = {}

        if strategy == "encoding":
            changes["encoding"] = self.rng.choice(list(Encoding))
        elif strategy == "wrapper":
            changes["wrapper"] = self.rng.choice(list(Wrapper))
        elif strategy == "boundary":
            changes["value"] = self.mutate_boundary(payload.value)
        elif strategy == "injection":
            layer = self.rng.choice(INJECTION_LAYERS)
            changes["injection_layer"] = layer
            changes["value"] = add_injection_layer(payload.value, layer)
        else:
            raise ValueError(f"Unknown mutation strategy: {strategy}")

        return replace(
            payload,
            id=new_payload_id(self.rng),
            mutations=[*payload.mutations, f"mut_{strategy}"],
            **changes,
        )

    def mutate_boundary(self, value: Any) -> Any:
        """Nudge a number toward an edge. Non-numeric values come back unchanged."""
        if value_kind(value) is not ValueKind.NUMBER:
            return value

        candidates = [
            value + BOUNDARY_EPSILON,
            value - BOUNDARY_EPSILON,
            value * 2,
            value / 2,
            -value,
        ]
        if isinstance(value, int) or math.isfinite(value):
            candidates.extend([math.floor(value), math.ceil(value)])
        else:
            candidates.extend([value, value])
        return self.rng.choice(candidates)

    def random_payload(self, param: Parameter, generation: int) -> Payload:
        """A fresh seed-derived genome with random rendering metadata."""
        seeds = self.seed_generator.generate(param)
        value = self.rng.choice(seeds)
        encoding = self.rng.choice(list(Encoding))
        wrapper = self.rng.choice(list(Wrapper))

        layer = InjectionLayer.NONE
        if self.rng.random() < self.settings.random_injection_rate:
            layer = self.rng.choice(INJECTION_LAYERS)
            value = add_injection_layer(value, layer)

        return Payload(
            id=new_payload_id(self.rng),
            value=value,
            encoding=encoding,
            wrapper=wrapper,
            injection_layer=layer,
            mutations=["random"],
            generation=generation,
        )

    def pad_with_fresh(self, population: list[Payload], param: Parameter, generation: int) -> list[Payload]:
        """Top a population up to population_size with fresh genomes."""
        padded = list(population)
        while len(padded) < self.settings.population_size:
            padded.append(self.random_payload(param, generation))
        return padded

    def next_generation(
        self,
        population: list[Payload],
        score_of: ScoreLookup,
        param: Parameter,
        generation: int,
    ) -> list[Payload]:
        """Selection, crossover, mutation and replenishment in one step."""
        survivors = self.select_top(population, score_of)
        offspring = self.mutate(self.crossover(survivors))
        kept = (survivors + offspring)[:self.settings.population_size]
        return self.pad_with_fresh(kept, param, generation)
