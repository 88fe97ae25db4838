import math
import random

import pytest

from checkoutforge.config import EvolutionSettings
from checkoutforge.fuzzing.genome import Encoding, InjectionLayer, Payload, ValueKind, Wrapper, value_kind
from checkoutforge.fuzzing.population import PopulationManager, add_injection_layer


def manager(rng, **overrides) -> PopulationManager:
    return PopulationManager(EvolutionSettings(**overrides), rng)


def payload(pid, value=1, **kwargs) -> Payload:
    return Payload(id=pid, value=value, **kwargs)


def test_select_top_keeps_best_fraction(rng):
    population = [payload(f"p{i}") for i in range(40)]
    scores = {f"p{i}": i / 100 for i in range(40)}

    survivors = manager(rng).select_top(population, lambda pid: scores.get(pid, 0.0))

    assert len(survivors) == 9  # floor(30 * 0.3)
    assert [p.id for p in survivors] == [f"p{i}" for i in range(39, 30, -1)]


def test_select_top_treats_unscored_as_zero(rng):
    population = [payload("a"), payload("b"), payload("c")]
    scores = {"c": 0.4}
    survivors = manager(rng, population_size=10).select_top(population, lambda pid: scores.get(pid, 0.0))
    assert [p.id for p in survivors] == ["c", "a", "b"]


def test_crossover_swaps_rendering_traits(rng):
    first = payload("a", value=0, encoding=Encoding.URL, wrapper=Wrapper.ARRAY,
                    injection_layer=InjectionLayer.SQL, mutations=["seed"], generation=2)
    second = payload("b", value="x", encoding=Encoding.BASE64, wrapper=Wrapper.OBJECT,
                     injection_layer=InjectionLayer.COMMAND, mutations=["random"], generation=4)

    children = manager(rng, crossover_rate=1.0).crossover([first, second])

    assert len(children) == 2
    child_a, child_b = children
    assert (child_a.value, child_a.wrapper) == (0, Wrapper.ARRAY)
    assert (child_a.encoding, child_a.injection_layer) == (Encoding.BASE64, InjectionLayer.COMMAND)
    assert (child_b.value, child_b.wrapper) == ("x", Wrapper.OBJECT)
    assert (child_b.encoding, child_b.injection_layer) == (Encoding.URL, InjectionLayer.SQL)
    assert child_a.mutations == ["seed", "crossover"]
    assert child_b.mutations == ["random", "crossover"]
    assert child_a.generation == child_b.generation == 5
    assert len({child_a.id, child_b.id, "a", "b"}) == 4


def test_crossover_uses_disjoint_pairs_and_skips_odd_parent(rng):
    parents = [payload(f"p{i}") for i in range(5)]
    children = manager(rng, crossover_rate=1.0).crossover(parents)
    assert len(children) == 4


def test_crossover_rate_zero_produces_nothing(rng):
    parents = [payload(f"p{i}") for i in range(6)]
    assert manager(rng, crossover_rate=0.0).crossover(parents) == []


def test_mutate_rate_zero_keeps_offspring(rng):
    offspring = [payload(f"p{i}") for i in range(5)]
    assert manager(rng, mutation_rate=0.0).mutate(offspring) == offspring


def test_mutate_rate_one_gives_fresh_ids_and_trail(rng):
    offspring = [payload(f"p{i}", mutations=["crossover"]) for i in range(20)]
    mutated = manager(rng, mutation_rate=1.0).mutate(offspring)

    assert len(mutated) == 20
    for before, after in zip(offspring, mutated):
        assert after.id != before.id
        assert after.mutations[:-1] == ["crossover"]
        assert after.mutations[-1] in {"mut_encoding", "mut_wrapper", "mut_boundary", "mut_injection"}


def test_boundary_mutation_of_ten(rng):
    pm = manager(rng)
    allowed = [10.00001, 9.99999, 20, 5, -10, 10, 10]

    for _ in range(200):
        result = pm.mutate_boundary(10)
        assert value_kind(result) is ValueKind.NUMBER
        assert any(result == pytest.approx(candidate) for candidate in allowed)


def test_boundary_mutation_covers_every_candidate():
    pm = manager(random.Random(0))
    seen = {round(pm.mutate_boundary(10), 5) for _ in range(500)}
    assert seen == {10.00001, 9.99999, 20, 5, -10, 10}


@pytest.mark.parametrize("value", ["10", None, [1], {"a": 1}, True])
def test_boundary_mutation_is_noop_for_non_numbers(rng, value):
    assert manager(rng).mutate_boundary(value) == value


def test_boundary_mutation_handles_non_finite(rng):
    pm = manager(rng)
    for _ in range(50):
        assert math.isinf(pm.mutate_boundary(float("inf")))
        assert math.isnan(pm.mutate_boundary(float("nan")))


def test_apply_boundary_on_string_is_a_noop(rng):
    original = payload("s", value="abc", mutations=["seed"])
    assert manager(rng).apply_mutation(original, "boundary") is original


def test_apply_boundary_on_number_gives_new_genome(rng):
    original = payload("n", value=10)
    mutated = manager(rng).apply_mutation(original, "boundary")
    assert mutated.id != original.id
    assert mutated.mutations == ["mut_boundary"]


def test_apply_injection_sets_layer_and_value(rng):
    mutated = manager(rng).apply_mutation(payload("i", value=5), "injection")
    assert mutated.injection_layer is not InjectionLayer.NONE
    assert mutated.value == add_injection_layer(5, mutated.injection_layer)


def test_apply_unknown_strategy_raises(rng):
    with pytest.raises(ValueError):
        manager(rng).apply_mutation(payload("x"), "teleport")


@pytest.mark.parametrize("layer,expected", [
    (InjectionLayer.SQL, "5' OR '1'='1"),
    (InjectionLayer.NOSQL, {"$gt": "5"}),
    (InjectionLayer.TEMPLATE, "${5}"),
    (InjectionLayer.COMMAND, "5; ls -la"),
    (InjectionLayer.NONE, 5),
])
def test_add_injection_layer(layer, expected):
    assert add_injection_layer(5, layer) == expected


def test_random_payload_is_seed_derived(rng, price_param):
    pm = manager(rng, random_injection_rate=0.0)
    fresh = pm.random_payload(price_param, generation=3)

    assert fresh.mutations == ["random"]
    assert fresh.generation == 3
    assert fresh.injection_layer is InjectionLayer.NONE
    assert any(fresh.value is s or fresh.value == s for s in pm.seed_generator.generate(price_param))


def test_random_payload_with_injection(rng, price_param):
    fresh = manager(rng, random_injection_rate=1.0).random_payload(price_param, generation=1)
    assert fresh.injection_layer is not InjectionLayer.NONE


def test_pad_with_fresh_reaches_population_size(rng, price_param):
    pm = manager(rng, population_size=12)
    padded = pm.pad_with_fresh([payload("a"), payload("b")], price_param, generation=1)

    assert len(padded) == 12
    assert [p.id for p in padded[:2]] == ["a", "b"]
    assert len({p.id for p in padded}) == 12


def test_next_generation_size_invariant(rng, price_param):
    pm = manager(rng)
    population = pm.seed_generator.initial_population(price_param, rng)
    scores: dict[str, float] = {}

    for gen in range(1, 8):
        for p in population:
            scores.setdefault(p.id, rng.random())
        population = pm.next_generation(population, lambda pid: scores.get(pid, 0.0), price_param, gen)
        assert len(population) == 30
        assert len({p.id for p in population}) == 30


def test_next_generation_never_exceeds_size(rng, price_param):
    pm = manager(rng, population_size=10, survival_rate=1.0, crossover_rate=1.0)
    population = [payload(f"p{i}") for i in range(10)]
    assert len(pm.next_generation(population, lambda pid: 0.0, price_param, 1)) == 10
