"""
Evolution controller - genetic search for exploit-triggering inputs.

Drives one parameter of one endpoint through generations of payloads:

- Establishes a baseline response from the parameter's original value
- Seeds generation 0 from the parameter's type and name
- Scores every new genome sequentially against the live target
- Keeps the fittest, recombines and mutates them, refills with fresh genomes
- Stops on time budget, stagnation, enough exploits, or generation count

Each evolve() call owns its population, fitness cache, error fingerprints and
baseline, so calls for different parameters can run concurrently.
"""

import asyncio
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from checkoutforge.config import CheckoutForgeConfig
from checkoutforge.models import Endpoint, Parameter
from checkoutforge.fuzzing.fitness import (
    TRANSPORT_ERRORS,
    FitnessEvaluator,
    FitnessResult,
    build_request,
)
from checkoutforge.fuzzing.genome import Payload
from checkoutforge.fuzzing.population import PopulationManager
from checkoutforge.fuzzing.seeds import SeedGenerator
from checkoutforge.utils.http import HTTPClient, HTTPConfig, HTTPResponse, ProbeClient


class EvolutionState(Enum):
    INITIALIZING = "initializing"
    EVALUATING = "evaluating"
    SELECTING = "selecting"
    TERMINATED = "terminated"


class TerminationReason(Enum):
    TIMEOUT = "timeout"
    STAGNATION = "stagnation"
    EXPLOIT_LIMIT = "exploit_limit"
    GENERATIONS_EXHAUSTED = "generations_exhausted"


@dataclass
class FuzzingResult:
    """Outcome of one evolve() call."""
    best_payloads: list[Payload]
    exploits: list[Payload]
    generations: int
    total_tests: int
    highest_fitness: float
    termination_reason: TerminationReason | None = None
    scores: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "best_payloads": [
                {**p.to_dict(), "fitness": self.scores.get(p.id, 0.0)} for p in self.best_payloads
            ],
            "exploits": [
                {**p.to_dict(), "fitness": self.scores.get(p.id, 0.0)} for p in self.exploits
            ],
            "generations": self.generations,
            "total_tests": self.total_tests,
            "highest_fitness": self.highest_fitness,
            "termination_reason": self.termination_reason.value if self.termination_reason else None,
        }


@dataclass
class EvolutionRun:
    """Mutable state of a single evolve() call."""
    endpoint: Endpoint
    parameter: Parameter
    generations: int
    rng: random.Random
    state: EvolutionState = EvolutionState.INITIALIZING
    baseline: HTTPResponse | None = None
    population: list[Payload] = field(default_factory=list)
    fitness_scores: dict[str, FitnessResult] = field(default_factory=dict)
    error_fingerprints: set[str] = field(default_factory=set)
    exploits: list[Payload] = field(default_factory=list)
    highest_fitness: float = 0.0
    stagnation_counter: int = 0
    generations_run: int = 0
    termination_reason: TerminationReason | None = None
    started_at: float = field(default_factory=time.monotonic)

    def score_of(self, payload_id: str) -> float:
        result = self.fitness_scores.get(payload_id)
        return result.score if result else 0.0

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class EvolutionaryFuzzer:
    """
    Genetic-algorithm payload search for a single request parameter.

    Pass a probe to control how requests are sent; without one, an
    HTTPClient is built from the network settings for each run and closed
    when the run ends.
    """

    def __init__(
        self,
        config: CheckoutForgeConfig | None = None,
        probe: ProbeClient | None = None,
        rng: random.Random | None = None,
        callback: Callable[[str], None] | None = None,
    ):
        self.config = config or CheckoutForgeConfig()
        self.settings = self.config.evolution
        self.settings.validate()
        self.probe = probe
        self.rng = rng
        self.callback = callback
        self.seed_generator = SeedGenerator(self.settings.encoded_seed_count)

    async def evolve(
        self,
        endpoint: Endpoint,
        parameter: Parameter,
        generations: int | None = None,
    ) -> FuzzingResult:
        """Evolve payloads for one parameter. Always returns a result."""
        run = EvolutionRun(
            endpoint=endpoint,
            parameter=parameter,
            generations=generations if generations is not None else self.settings.generations,
            rng=self._run_rng(),
        )

        if self.probe is not None:
            return await self._evolve(run, self.probe)

        async with self._get_http_client() as http:
            return await self._evolve(run, http)

    def _run_rng(self) -> random.Random:
        """Private random source for one run, so concurrent runs never share a stream."""
        if self.rng is not None:
            return random.Random(self.rng.getrandbits(64))
        return random.Random(self.settings.seed)

    def evolve_sync(
        self,
        endpoint: Endpoint,
        parameter: Parameter,
        generations: int | None = None,
    ) -> FuzzingResult:
        """Synchronous wrapper around evolve()."""
        return asyncio.run(self.evolve(endpoint, parameter, generations))

    async def _evolve(self, run: EvolutionRun, probe: ProbeClient) -> FuzzingResult:
        param = run.parameter
        self._log(f"Starting evolution for {param.name} @ {run.endpoint.url}")
        self._log(f"Settings: {self.settings.population_size} population, {run.generations} generations")

        run.baseline = await self._establish_baseline(probe, run.endpoint, param)
        evaluator = self._create_evaluator(probe, run)
        manager = PopulationManager(self.settings, run.rng, self.seed_generator)

        run.population = self.seed_generator.initial_population(param, run.rng)
        self._log(f"Initialized population with {len(run.population)} payloads")

        for gen in range(run.generations):
            if run.elapsed() > self.settings.max_duration:
                self._log(f"Timeout reached ({self.settings.max_duration}s) for {param.name}. Moving on.")
                run.termination_reason = TerminationReason.TIMEOUT
                break

            run.state = EvolutionState.EVALUATING
            self._log(f"Generation {gen + 1}/{run.generations} - Population: {len(run.population)}")
            improved = await self._evaluate_generation(run, evaluator)
            run.generations_run += 1

            if improved:
                run.stagnation_counter = 0
            else:
                run.stagnation_counter += 1
                if run.stagnation_counter >= self.settings.stagnation_limit:
                    self._log(f"Evolution stagnated for {self.settings.stagnation_limit} generations. Stopping early.")
                    run.termination_reason = TerminationReason.STAGNATION
                    break

            if len(run.exploits) >= self.settings.max_exploits:
                self._log(f"Found {len(run.exploits)} exploits, terminating early")
                run.termination_reason = TerminationReason.EXPLOIT_LIMIT
                break

            if gen == run.generations - 1:
                run.termination_reason = TerminationReason.GENERATIONS_EXHAUSTED
                break

            run.state = EvolutionState.SELECTING
            run.population = manager.next_generation(run.population, run.score_of, param, gen + 1)

        if run.termination_reason is None:
            # zero or negative generation bound
            run.termination_reason = TerminationReason.GENERATIONS_EXHAUSTED
        run.state = EvolutionState.TERMINATED
        return self._build_result(run)

    async def _establish_baseline(
        self,
        probe: ProbeClient,
        endpoint: Endpoint,
        param: Parameter,
    ) -> HTTPResponse | None:
        """Send the original value once. A failure leaves the run without a baseline."""
        request = build_request(endpoint, param, param.value)
        try:
            response = await probe.send(request)
        except TRANSPORT_ERRORS as e:
            self._log(f"Failed to establish baseline: {e}")
            return None

        self._log(
            f"Baseline established: {response.status_code}, "
            f"{len(response.body)} bytes, {response.duration_ms:.0f}ms"
        )
        return response

    def _create_evaluator(self, probe: ProbeClient, run: EvolutionRun) -> FitnessEvaluator:
        return FitnessEvaluator(probe, run.baseline, run.error_fingerprints)

    async def _evaluate_generation(self, run: EvolutionRun, evaluator: FitnessEvaluator) -> bool:
        """Score unseen genomes one at a time. Returns True on a new best."""
        improved = False

        for payload in run.population:
            if payload.id in run.fitness_scores:
                continue

            fitness = await self.evaluate_cached(run, evaluator, payload)

            if fitness.score > run.highest_fitness:
                run.highest_fitness = fitness.score
                improved = True
                self._log(f"New highest fitness: {fitness.score:.3f}")

            if fitness.score >= self.settings.exploit_threshold:
                self._log(f"Found potential exploit! Score: {fitness.score:.3f}")
                run.exploits.append(payload)

        return improved

    async def evaluate_cached(
        self,
        run: EvolutionRun,
        evaluator: FitnessEvaluator,
        payload: Payload,
    ) -> FitnessResult:
        """Evaluate a genome at most once per run."""
        cached = run.fitness_scores.get(payload.id)
        if cached is not None:
            return cached

        fitness = await evaluator.evaluate(run.endpoint, run.parameter, payload)
        run.fitness_scores[payload.id] = fitness
        return fitness

    def _build_result(self, run: EvolutionRun) -> FuzzingResult:
        ranked = sorted(run.population, key=lambda p: run.score_of(p.id), reverse=True)
        best = ranked[:self.settings.best_payload_count]

        return FuzzingResult(
            best_payloads=best,
            exploits=list(run.exploits),
            generations=run.generations_run,
            total_tests=len(run.fitness_scores),
            highest_fitness=run.highest_fitness,
            termination_reason=run.termination_reason,
            scores={p.id: run.score_of(p.id) for p in best + run.exploits},
        )

    def _get_http_client(self) -> HTTPClient:
        network = self.config.network
        config = HTTPConfig(
            timeout=network.timeout,
            verify_ssl=network.verify_ssl,
            proxy=network.proxy,
            rate_limit=network.rate_limit,
            max_retries=network.max_retries,
            user_agent=network.user_agent,
            headers=self.config.headers,
            cookies=self.config.cookies,
        )
        return HTTPClient(config)

    def _log(self, message: str):
        """Log progress."""
        if self.config.output.verbose:
            print(f"[EvolutionaryFuzzer] {message}")
        if self.callback:
            self.callback(message)


async def evolve(
    endpoint: Endpoint,
    parameter: Parameter,
    generations: int | None = None,
    **kwargs,
) -> FuzzingResult:
    """Convenience function for a single evolution run."""
    fuzzer = EvolutionaryFuzzer(**kwargs)
    return await fuzzer.evolve(endpoint, parameter, generations)


def evolve_sync(
    endpoint: Endpoint,
    parameter: Parameter,
    generations: int | None = None,
    **kwargs,
) -> FuzzingResult:
    """Synchronous wrapper for a single evolution run."""
    return asyncio.run(evolve(endpoint, parameter, generations, **kwargs))
