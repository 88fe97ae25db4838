"""
Seed payloads for generation 0.

Seeds are chosen from the parameter's declared type and its name; the rules
are additive, so a numeric "discount_total" gets both numeric and discount
probes. No network I/O happens here.
"""

import random
import re
import sys
from typing import Any

from checkoutforge.models import Parameter, ParameterType
from checkoutforge.fuzzing.genome import UNDEFINED, Encoding, Payload, new_payload_id


NUMERIC_NAME = re.compile(r"price|amount|qty|quantity|total", re.IGNORECASE)
DISCOUNT_NAME = re.compile(r"discount|coupon|promo|code", re.IGNORECASE)

NUMERIC_SEEDS: list[Any] = [
    0, -1, -0.01, 0.001, 0.00001,
    -999999, 999999999,
    2147483647, -2147483648,  # int32 boundaries
    9007199254740991,  # largest exact integer in a double
    sys.float_info.max,
    1e308, 1e-308,
    float("nan"), float("inf"), float("-inf"),
    "0", "-1", "0.00",
    "0x0", "0b0", "0o0",
    "1e999", "-1e999",
    "   0   ", "0\n", "\t0",
]

STRING_SEEDS: list[Any] = [
    "", " ", "\n", "\r\n", "\t",
    "null", "undefined", "NaN",
    "true", "false",
    "<script>alert(1)</script>",
    "${7*7}", "{{7*7}}",
    "' OR '1'='1", '"; DROP TABLE--',
    '{"$gt":""}',
]

DISCOUNT_SEEDS: list[Any] = [
    "", "INVALID", "TEST",
    "100%OFF", "-100", "-50",
    "ADMIN", "DEBUG", "INTERNAL",
    ",".join(["CODE"] * 100),  # stacking
]

SEED_ENCODINGS = [Encoding.URL, Encoding.BASE64, Encoding.UNICODE]


class SeedGenerator:
    """Builds type and name aware starting values."""

    def __init__(self, encoded_seed_count: int = 10):
        self.encoded_seed_count = encoded_seed_count

    def generate(self, param: Parameter) -> list[Any]:
        """Raw seed values for a parameter, in a stable order."""
        seeds: list[Any] = []

        if param.type == ParameterType.NUMBER or NUMERIC_NAME.search(param.name):
            seeds.extend(NUMERIC_SEEDS)

        if param.type == ParameterType.STRING:
            seeds.extend(STRING_SEEDS)

        if DISCOUNT_NAME.search(param.name):
            seeds.extend(DISCOUNT_SEEDS)
            seeds.append(param.value)  # replay

        # Structural confusion
        seeds.extend([
            [], [None], [0], [-1],
            {}, {"value": 0}, {"price": 0},
            [param.value, param.value],
            None, UNDEFINED,
        ])

        return seeds

    def initial_population(self, param: Parameter, rng: random.Random) -> list[Payload]:
        """Generation 0: every seed raw, plus encoded variants of the first few."""
        seeds = self.generate(param)
        population = [
            Payload(id=new_payload_id(rng), value=seed, mutations=["seed"], generation=0)
            for seed in seeds
        ]

        for seed in seeds[:self.encoded_seed_count]:
            for encoding in SEED_ENCODINGS:
                population.append(Payload(
                    id=new_payload_id(rng),
                    value=seed,
                    encoding=encoding,
                    mutations=["seed", encoding.value],
                    generation=0,
                ))

        return population
