"""
Fitness evaluation for payload genomes.

A genome is rendered, sent in place of the parameter under test, and the
response is scored against the baseline by seven independent factors. The
sum is clamped to [0, 1].
"""

import asyncio
import re
from dataclasses import asdict, dataclass, field
from typing import Any

import httpx

from checkoutforge.models import Endpoint, Parameter, ParameterLocation
from checkoutforge.fuzzing.genome import UNDEFINED, Payload, to_json_safe, to_text
from checkoutforge.utils.http import HTTPResponse, ProbeClient, ProbeRequest, TransportError


ERROR_PATTERNS = [
    re.compile(r'error[:\s]+([^"<\n]+)', re.IGNORECASE),
    re.compile(r'message[:\s]+([^"<\n]+)', re.IGNORECASE),
    re.compile(r'exception[:\s]+([^"<\n]+)', re.IGNORECASE),
]

SECURITY_HEADERS = ["content-security-policy", "x-frame-options", "x-xss-protection"]

SUCCESS_KEYWORDS = [
    "order_id", "order_number", "confirmation",
    "thank you", "success", "payment_id",
    "transaction_id", "receipt",
]

# Methods that carry the parameter in the query string
QUERY_METHODS = {"GET", "HEAD"}

TRANSPORT_ERRORS = (TransportError, httpx.HTTPError, asyncio.TimeoutError, TimeoutError, ConnectionError)


@dataclass
class FitnessFactors:
    """Per-factor contributions to a fitness score."""
    status_progression: float = 0.0
    error_uniqueness: float = 0.0
    timing_anomaly: float = 0.0
    size_deviation: float = 0.0
    payload_reflection: float = 0.0
    header_weakening: float = 0.0
    transaction_success: float = 0.0

    def total(self) -> float:
        return sum(asdict(self).values())

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass
class FitnessResult:
    """Score, its breakdown and the response it was computed from."""
    score: float
    factors: FitnessFactors = field(default_factory=FitnessFactors)
    response: HTTPResponse = field(default_factory=HTTPResponse.empty)

    @classmethod
    def unreachable(cls, url: str = "") -> "FitnessResult":
        return cls(score=0.0, factors=FitnessFactors(), response=HTTPResponse.empty(url))

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "factors": self.factors.to_dict(),
            "status_code": self.response.status_code,
        }


def build_request(endpoint: Endpoint, param: Parameter, value: Any) -> ProbeRequest:
    """
    Put a value in place of the parameter under test.

    Query-string requests carry the value's text form; everything else sends
    the endpoint's declared parameters as a JSON body. An undefined value is
    left out of the request entirely.
    """
    method = endpoint.method.upper()
    headers = dict(endpoint.headers)

    if method in QUERY_METHODS or param.location == ParameterLocation.QUERY:
        params = {
            p.name: to_text(p.value)
            for p in endpoint.parameters
            if p.location == ParameterLocation.QUERY and p.name != param.name
        }
        if value is not UNDEFINED:
            params[param.name] = to_text(value)
        return ProbeRequest(method=method, url=endpoint.url, headers=headers, params=params)

    body = {
        p.name: p.value
        for p in endpoint.parameters
        if p.location == ParameterLocation.BODY and p.name != param.name
    }
    if value is not UNDEFINED:
        body[param.name] = value
    return ProbeRequest(method=method, url=endpoint.url, headers=headers, json=to_json_safe(body))


def score_status(response: HTTPResponse) -> float:
    """200 means the input was accepted, 500 means it reached deep code."""
    if response.status_code in (200, 201):
        return 0.2
    if response.status_code in (400, 422):
        return 0.05
    if response.status_code == 500:
        return 0.1
    return 0.0


def extract_error_fingerprint(response: HTTPResponse) -> str | None:
    """First 100 characters of the first error-ish message in the body."""
    body = response.body.lower()
    for pattern in ERROR_PATTERNS:
        match = pattern.search(body)
        if match:
            return match.group(1)[:100]
    return None


def score_timing(response: HTTPResponse, baseline: HTTPResponse | None) -> float:
    if baseline is None or baseline.elapsed <= 0:
        return 0.0
    ratio = response.elapsed / baseline.elapsed
    if ratio > 2.0:
        return 0.1
    if ratio > 1.5:
        return 0.05
    return 0.0


def score_size(response: HTTPResponse, baseline: HTTPResponse | None) -> float:
    # Only the first matching branch applies
    if baseline is None:
        return 0.0
    diff = abs(len(response.body) - len(baseline.body))
    if diff > len(baseline.body) * 0.5:
        return 0.1
    if diff > 1000:
        return 0.05
    return 0.0


def score_reflection(response: HTTPResponse, rendered: Any) -> float:
    text = to_text(rendered)
    if text and text in response.body:
        return 0.1
    return 0.0


def score_headers(response: HTTPResponse, baseline: HTTPResponse | None) -> float:
    """0.05 for every security header the baseline had and this response lacks."""
    if baseline is None:
        return 0.0
    had = {name.lower() for name in baseline.headers}
    has = {name.lower() for name in response.headers}
    score = 0.0
    for header in SECURITY_HEADERS:
        if header in had and header not in has:
            score += 0.05
    return score


def score_transaction(response: HTTPResponse) -> float:
    body = response.body.lower()
    if any(keyword in body for keyword in SUCCESS_KEYWORDS):
        return 0.3
    return 0.0


class FitnessEvaluator:
    """
    Scores genomes for one evolution run.

    Holds the run's baseline and the set of error fingerprints seen so far,
    so a new evaluator must be created for every run.
    """

    def __init__(
        self,
        probe: ProbeClient,
        baseline: HTTPResponse | None = None,
        error_fingerprints: set[str] | None = None,
    ):
        self.probe = probe
        self.baseline = baseline
        self.error_fingerprints = error_fingerprints if error_fingerprints is not None else set()

    async def evaluate(self, endpoint: Endpoint, param: Parameter, payload: Payload) -> FitnessResult:
        """Send a genome and score the response. Never raises on transport failure."""
        rendered = payload.render()
        request = build_request(endpoint, param, rendered)

        try:
            response = await self.probe.send(request)
        except TRANSPORT_ERRORS:
            return FitnessResult.unreachable(endpoint.url)

        return self.score(response, rendered)

    def score(self, response: HTTPResponse, rendered: Any) -> FitnessResult:
        factors = FitnessFactors(
            status_progression=score_status(response),
            error_uniqueness=self._score_error_uniqueness(response),
            timing_anomaly=score_timing(response, self.baseline),
            size_deviation=score_size(response, self.baseline),
            payload_reflection=score_reflection(response, rendered),
            header_weakening=score_headers(response, self.baseline),
            transaction_success=score_transaction(response),
        )
        return FitnessResult(score=min(factors.total(), 1.0), factors=factors, response=response)

    def _score_error_uniqueness(self, response: HTTPResponse) -> float:
        """Reward error messages this run has not produced before."""
        fingerprint = extract_error_fingerprint(response)
        if fingerprint and fingerprint not in self.error_fingerprints:
            self.error_fingerprints.add(fingerprint)
            return 0.15
        return 0.0
