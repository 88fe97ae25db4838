"""Test doubles shared across the suite."""

from typing import Any, Callable

from checkoutforge.fuzzing.fitness import FitnessResult
from checkoutforge.utils.http import HTTPResponse, ProbeRequest


def make_response(
    status: int = 200,
    body: str = "",
    headers: dict[str, str] | None = None,
    elapsed: float = 0.1,
    url: str = "https://shop.test/api/checkout",
) -> HTTPResponse:
    return HTTPResponse(
        url=url,
        status_code=status,
        headers=headers or {},
        body=body,
        elapsed=elapsed,
    )


class FakeProbe:
    """Probe client that records requests and answers from a handler."""

    def __init__(self, handler: Callable[[ProbeRequest], Any] | None = None):
        self.handler = handler or (lambda request: make_response())
        self.requests: list[ProbeRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def send(self, request: ProbeRequest) -> HTTPResponse:
        self.requests.append(request)
        result = self.handler(request)
        if isinstance(result, BaseException):
            raise result
        return result


class FixedEvaluator:
    """Evaluator returning the same score for every genome."""

    def __init__(self, score: float):
        self.score = score
        self.calls = 0

    async def evaluate(self, endpoint, param, payload) -> FitnessResult:
        self.calls += 1
        return FitnessResult(score=self.score)
