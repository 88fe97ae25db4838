"""
Configuration management for CheckoutForge.

Supports JSON config files, named presets and CLI overrides.
"""

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any


@dataclass
class EvolutionSettings:
    """Genetic search tuning."""
    population_size: int = 30
    survival_rate: float = 0.3
    mutation_rate: float = 0.15
    crossover_rate: float = 0.7
    generations: int = 30
    stagnation_limit: int = 5            # Generations without a new best
    max_duration: float = 120.0          # Seconds per evolve() call
    exploit_threshold: float = 0.9
    max_exploits: int = 3                # Stop once this many are found
    best_payload_count: int = 10
    encoded_seed_count: int = 10         # Seeds that also get encoded variants
    random_injection_rate: float = 0.3   # Fresh genomes carrying an injection layer
    seed: int | None = None              # Random seed for reproducible runs

    def validate(self):
        """Reject settings the search cannot run with."""
        if self.population_size < 2:
            raise ValueError(f"population_size must be at least 2, got {self.population_size}")
        if self.generations < 1:
            raise ValueError(f"generations must be at least 1, got {self.generations}")
        for name in ("survival_rate", "mutation_rate", "crossover_rate", "random_injection_rate"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")


@dataclass
class NetworkSettings:
    """Network/HTTP settings."""
    timeout: float = 15.0
    rate_limit: float = 0.0              # Requests per second (0 = unlimited)
    max_retries: int = 1                 # One attempt per fitness evaluation
    verify_ssl: bool = False
    proxy: str | None = None
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


@dataclass
class DetectorSettings:
    """How the detector drives the engine across parameters."""
    max_parameters: int = 5
    generations: int = 10


@dataclass
class OutputSettings:
    """Output/reporting settings."""
    verbose: bool = False
    output_file: str | None = None


@dataclass
class CheckoutForgeConfig:
    """Complete CheckoutForge configuration."""
    evolution: EvolutionSettings = field(default_factory=EvolutionSettings)
    network: NetworkSettings = field(default_factory=NetworkSettings)
    detector: DetectorSettings = field(default_factory=DetectorSettings)
    output: OutputSettings = field(default_factory=OutputSettings)

    # Custom headers and cookies
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "evolution": asdict(self.evolution),
            "network": asdict(self.network),
            "detector": asdict(self.detector),
            "output": asdict(self.output),
            "headers": self.headers,
            "cookies": self.cookies,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CheckoutForgeConfig":
        """Create config from dictionary."""
        config = cls()

        for section in ("evolution", "network", "detector", "output"):
            if section in data:
                target = getattr(config, section)
                for key, value in data[section].items():
                    if hasattr(target, key):
                        setattr(target, key, value)

        if "headers" in data:
            config.headers = data["headers"]

        if "cookies" in data:
            config.cookies = data["cookies"]

        return config

    @classmethod
    def from_file(cls, filepath: str | Path) -> "CheckoutForgeConfig":
        """Load config from JSON file."""
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Config file not found: {filepath}")

        with open(filepath) as f:
            data = json.load(f)

        return cls.from_dict(data)

    def save(self, filepath: str | Path):
        """Save config to JSON file."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get default config file path."""
        return Path.home() / ".config" / "checkoutforge" / "config.json"

    @classmethod
    def load_or_create_default(cls) -> "CheckoutForgeConfig":
        """Load config from default path or create default."""
        config_path = cls.get_default_config_path()
        if config_path.exists():
            return cls.from_file(config_path)
        return cls()


# Preset configurations
PRESETS = {
    "quick": CheckoutForgeConfig(
        evolution=EvolutionSettings(
            population_size=20,
            generations=10,
            stagnation_limit=3,
            max_duration=60.0,
        ),
        network=NetworkSettings(timeout=10.0),
    ),
    "thorough": CheckoutForgeConfig(
        evolution=EvolutionSettings(
            population_size=50,
            generations=60,
            stagnation_limit=10,
            max_duration=600.0,
            max_exploits=10,
        ),
        network=NetworkSettings(timeout=30.0),
        detector=DetectorSettings(max_parameters=20, generations=30),
    ),
    "stealth": CheckoutForgeConfig(
        evolution=EvolutionSettings(
            population_size=15,
            generations=10,
            max_duration=300.0,
        ),
        network=NetworkSettings(rate_limit=1.0),
    ),
}


def get_preset(name: str) -> CheckoutForgeConfig:
    """Get a copy of a preset configuration."""
    if name not in PRESETS:
        raise ValueError(f"Unknown preset: {name}. Available: {list(PRESETS.keys())}")
    return CheckoutForgeConfig.from_dict(PRESETS[name].to_dict())
