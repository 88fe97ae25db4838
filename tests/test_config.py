import json

import pytest

from checkoutforge.config import (
    PRESETS,
    CheckoutForgeConfig,
    EvolutionSettings,
    get_preset,
)


def test_defaults():
    config = CheckoutForgeConfig()

    assert config.evolution.population_size == 30
    assert config.evolution.survival_rate == 0.3
    assert config.evolution.mutation_rate == 0.15
    assert config.evolution.crossover_rate == 0.7
    assert config.evolution.generations == 30
    assert config.evolution.stagnation_limit == 5
    assert config.evolution.max_duration == 120.0
    assert config.evolution.exploit_threshold == 0.9
    assert config.evolution.max_exploits == 3
    assert config.detector.max_parameters == 5
    assert config.detector.generations == 10
    assert config.network.max_retries == 1


def test_from_dict_ignores_unknown_keys():
    config = CheckoutForgeConfig.from_dict({
        "evolution": {"population_size": 12, "bogus": True},
        "network": {"timeout": 3.0},
        "headers": {"Authorization": "Bearer t"},
    })

    assert config.evolution.population_size == 12
    assert not hasattr(config.evolution, "bogus")
    assert config.network.timeout == 3.0
    assert config.headers == {"Authorization": "Bearer t"}
    assert config.cookies == {}


def test_save_and_load(tmp_path):
    config = CheckoutForgeConfig()
    config.evolution.seed = 99
    config.cookies = {"session": "abc"}
    path = tmp_path / "nested" / "config.json"

    config.save(path)
    loaded = CheckoutForgeConfig.from_file(path)

    assert json.loads(path.read_text())["evolution"]["seed"] == 99
    assert loaded.to_dict() == config.to_dict()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        CheckoutForgeConfig.from_file(tmp_path / "absent.json")


def test_load_or_create_default_without_file(tmp_path, monkeypatch):
    monkeypatch.setattr(CheckoutForgeConfig, "get_default_config_path", classmethod(lambda cls: tmp_path / "none.json"))
    assert CheckoutForgeConfig.load_or_create_default().to_dict() == CheckoutForgeConfig().to_dict()


@pytest.mark.parametrize("name", sorted(PRESETS))
def test_presets_are_valid(name):
    preset = get_preset(name)
    preset.evolution.validate()


def test_get_preset_returns_a_copy():
    quick = get_preset("quick")
    quick.evolution.population_size = 2

    assert PRESETS["quick"].evolution.population_size == 20
    assert get_preset("stealth").network.rate_limit == 1.0
    assert get_preset("thorough").detector.max_parameters == 20


def test_unknown_preset():
    with pytest.raises(ValueError, match="Unknown preset"):
        get_preset("turbo")


@pytest.mark.parametrize("field,value", [
    ("population_size", 1),
    ("generations", 0),
    ("crossover_rate", 2.0),
    ("random_injection_rate", -0.5),
])
def test_validate_rejects(field, value):
    with pytest.raises(ValueError, match=field):
        EvolutionSettings(**{field: value}).validate()
