"""
Evolutionary fuzzing detector for CheckoutForge.

Runs the evolutionary fuzzer over the most interesting parameters of a set of
endpoints and turns every exploit it evolves into a finding.
"""

import asyncio
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from checkoutforge.config import CheckoutForgeConfig
from checkoutforge.models import Endpoint, Parameter, ParameterType
from checkoutforge.fuzzing.evolution import EvolutionaryFuzzer, FuzzingResult
from checkoutforge.fuzzing.genome import to_text
from checkoutforge.utils.http import HTTPClient, HTTPConfig


HIGH_PRIORITY_NAME = re.compile(
    r"price|amount|qty|quantity|total|discount|coupon|promo|admin|role|id|user",
    re.IGNORECASE,
)

FUZZABLE_TYPES = {ParameterType.STRING, ParameterType.NUMBER}


@dataclass
class FuzzingFinding:
    """An exploit evolved against one parameter."""
    endpoint: str
    parameter: str
    payload: str
    generation: int
    fitness: float
    vuln_type: str = "evolved_exploit"
    severity: str = "high"
    confidence: float = 0.9
    evidence: str = ""
    impact: str = "Parameter is vulnerable to input fuzzing"
    mutations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert finding to dictionary."""
        return {
            "type": self.vuln_type,
            "endpoint": self.endpoint,
            "parameter": self.parameter,
            "payload": self.payload,
            "generation": self.generation,
            "fitness": self.fitness,
            "severity": self.severity,
            "confidence": self.confidence,
            "evidence": self.evidence,
            "impact": self.impact,
            "mutations": self.mutations,
        }


class AdvancedFuzzingDetector:
    """Wraps the evolutionary fuzzer to test the parameters of an attack surface."""

    def __init__(
        self,
        config: CheckoutForgeConfig | None = None,
        fuzzer: EvolutionaryFuzzer | None = None,
        callback: Callable[[str], None] | None = None,
    ):
        self.config = config or CheckoutForgeConfig()
        self.callback = callback
        self.findings: list[FuzzingFinding] = []
        self.results: dict[tuple[str, str], FuzzingResult] = {}
        self._fuzzer = fuzzer
        self._http_client: HTTPClient | None = None

    async def __aenter__(self):
        await self._init_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _init_client(self):
        """Initialize HTTP client shared by every fuzzing run."""
        if self._fuzzer is not None:
            return
        network = self.config.network
        http_config = HTTPConfig(
            timeout=network.timeout,
            verify_ssl=network.verify_ssl,
            proxy=network.proxy,
            rate_limit=network.rate_limit,
            max_retries=network.max_retries,
            user_agent=network.user_agent,
            headers=self.config.headers,
            cookies=self.config.cookies,
        )
        self._http_client = HTTPClient(http_config)
        self._fuzzer = EvolutionaryFuzzer(self.config, probe=self._http_client, callback=self.callback)

    async def close(self):
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.close()
            self._http_client = None

    def prioritize_parameters(self, params: list[Parameter]) -> list[Parameter]:
        """Business-critical names first, original order otherwise."""
        return sorted(params, key=lambda p: 0 if HIGH_PRIORITY_NAME.search(p.name) else 1)

    def should_fuzz(self, param: Parameter) -> bool:
        """Only strings and numbers are worth evolving."""
        return param.type in FUZZABLE_TYPES

    async def test(self, endpoints: list[Endpoint]) -> list[FuzzingFinding]:
        """Fuzz the top parameters across all endpoints."""
        if self._fuzzer is None:
            await self._init_client()

        findings: list[FuzzingFinding] = []

        # One entry per parameter name, first declaration wins
        distinct: dict[str, Parameter] = {}
        for endpoint in endpoints:
            for param in endpoint.parameters:
                distinct.setdefault(param.name, param)

        candidates = list(distinct.values())
        prioritized = self.prioritize_parameters(candidates)[:self.config.detector.max_parameters]
        self._log(
            f"Starting evolutionary fuzzing on {len(prioritized)} parameters "
            f"(filtered from {len(candidates)})"
        )

        for index, param in enumerate(prioritized, 1):
            if not self.should_fuzz(param):
                continue

            for endpoint in endpoints:
                declared = endpoint.get_parameter(param.name)
                if declared is None:
                    continue

                self._log(f"[{index}/{len(prioritized)}] Fuzzing parameter '{param.name}' on {endpoint.url}")
                try:
                    result = await self._fuzzer.evolve(endpoint, declared, self.config.detector.generations)
                except Exception as e:
                    self._log(f"Error fuzzing {param.name}: {e}")
                    continue

                self.results[(endpoint.url, param.name)] = result
                findings.extend(self._to_findings(endpoint, declared, result))

        self.findings.extend(findings)
        return findings

    def test_sync(self, endpoints: list[Endpoint]) -> list[FuzzingFinding]:
        """Synchronous wrapper around test()."""
        async def _run():
            async with self:
                return await self.test(endpoints)

        return asyncio.run(_run())

    def _to_findings(self, endpoint: Endpoint, param: Parameter, result: FuzzingResult) -> list[FuzzingFinding]:
        return [
            FuzzingFinding(
                endpoint=endpoint.url,
                parameter=param.name,
                payload=to_text(exploit.render()),
                generation=exploit.generation,
                fitness=result.scores.get(exploit.id, 0.0),
                evidence=f"Evolutionary fuzzer found exploit in generation {exploit.generation}",
                mutations=list(exploit.mutations),
            )
            for exploit in result.exploits
        ]

    def get_report(self) -> dict[str, Any]:
        """Summary of every run and finding so far."""
        return {
            "total_findings": len(self.findings),
            "parameters_fuzzed": len(self.results),
            "total_tests": sum(r.total_tests for r in self.results.values()),
            "findings": [f.to_dict() for f in self.findings],
        }

    def _log(self, message: str):
        """Log progress."""
        if self.config.output.verbose:
            print(f"[AdvancedFuzzingDetector] {message}")
        if self.callback:
            self.callback(message)
