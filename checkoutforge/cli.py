#!/usr/bin/env python3
"""
CheckoutForge CLI - evolutionary fuzzing for checkout parameters.

Usage:
    checkoutforge fuzz -u URL -p NAME=VALUE [options]   # Evolve payloads for one parameter
    checkoutforge seeds --name NAME [options]           # Show generation 0 seed values

Examples:
    checkoutforge fuzz -u "https://shop.example/api/cart" -p price=100 --type number
    checkoutforge fuzz -u "https://shop.example/api/coupon" -p code=WELCOME10 --type string --preset quick
"""

import asyncio
import json
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from checkoutforge import __version__
from checkoutforge.config import CheckoutForgeConfig, PRESETS, get_preset
from checkoutforge.models import Endpoint, Parameter, ParameterLocation, ParameterType
from checkoutforge.fuzzing.evolution import EvolutionaryFuzzer, FuzzingResult
from checkoutforge.fuzzing.genome import to_text, value_kind
from checkoutforge.fuzzing.seeds import SeedGenerator
from checkoutforge.utils.encoding import Encoder

console = Console()

PARAM_TYPES = [t.value for t in ParameterType]


def print_banner():
    """Print the CheckoutForge banner."""
    console.print(Panel(
        "Genetic payload search for checkout and payment parameters",
        title=f"[bold red]CheckoutForge v{__version__}[/]",
        subtitle="Evolutionary Fuzzer",
    ))


def parse_value(raw: str, param_type: ParameterType):
    """Interpret a command line value according to the declared type."""
    if param_type == ParameterType.NUMBER:
        try:
            return int(raw)
        except ValueError:
            return float(raw)
    if param_type == ParameterType.BOOLEAN:
        return raw.lower() in ("1", "true", "yes", "on")
    if param_type in (ParameterType.ARRAY, ParameterType.OBJECT):
        return json.loads(raw)
    return raw


def parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    headers = {}
    for item in values:
        if ":" not in item:
            raise click.BadParameter(f"Header must look like 'Name: value', got {item!r}")
        name, value = item.split(":", 1)
        headers[name.strip()] = value.strip()
    return headers


def load_config(config_path: str | None, preset: str | None) -> CheckoutForgeConfig:
    if config_path:
        return CheckoutForgeConfig.from_file(config_path)
    if preset:
        return get_preset(preset)
    return CheckoutForgeConfig.load_or_create_default()


def display_result(result: FuzzingResult):
    """Display the best payloads and any exploits."""
    table = Table(title="Best payloads")
    table.add_column("#", justify="right")
    table.add_column("Fitness", justify="right")
    table.add_column("Gen", justify="right")
    table.add_column("Rendered value")
    table.add_column("Mutations", style="dim")

    for i, payload in enumerate(result.best_payloads, 1):
        table.add_row(
            str(i),
            f"{result.scores.get(payload.id, 0.0):.3f}",
            str(payload.generation),
            to_text(payload.render())[:60],
            " > ".join(payload.mutations),
        )
    console.print(table)

    reason = result.termination_reason.value if result.termination_reason else "unknown"
    console.print(
        f"[cyan]Generations:[/] {result.generations}  "
        f"[cyan]Tests:[/] {result.total_tests}  "
        f"[cyan]Highest fitness:[/] {result.highest_fitness:.3f}  "
        f"[cyan]Stopped:[/] {reason}"
    )

    if result.exploits:
        console.print(f"\n[bold green][+] Evolved {len(result.exploits)} exploit candidate(s)![/]\n")
        for i, exploit in enumerate(result.exploits, 1):
            console.print(f"[bold red]#{i} generation {exploit.generation}[/]")
            console.print(f"  [cyan]Payload:[/] [yellow]{to_text(exploit.render())}[/]")
            console.print(f"  [cyan]Fitness:[/] {result.scores.get(exploit.id, 0.0):.3f}")
            console.print(f"  [cyan]Mutations:[/] {', '.join(exploit.mutations)}")
    else:
        console.print("\n[yellow][-] No exploit candidates found.[/]")


@click.group()
@click.version_option(version=__version__)
def cli():
    """CheckoutForge - evolutionary fuzzing for checkout flows."""
    pass


@cli.command()
@click.option("-u", "--url", required=True, help="Target endpoint URL")
@click.option("-p", "--param", "param_spec", required=True, help="Parameter under test as NAME=VALUE")
@click.option("--type", "param_type", type=click.Choice(PARAM_TYPES), default="string", help="Declared parameter type")
@click.option("-m", "--method", default="POST", help="HTTP method")
@click.option("--query", is_flag=True, help="Send the parameter in the query string")
@click.option("-H", "--header", "headers", multiple=True, help="Extra header 'Name: value' (repeatable)")
@click.option("-g", "--generations", type=int, help="Maximum generations")
@click.option("--seed", type=int, help="Random seed for a reproducible run")
@click.option("--timeout", type=float, help="Request timeout in seconds")
@click.option("--preset", type=click.Choice(list(PRESETS.keys())), help="Use a preset configuration")
@click.option("-c", "--config", "config_path", type=click.Path(exists=True), help="JSON config file")
@click.option("-o", "--output", help="Output file (JSON)")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def fuzz(url, param_spec, param_type, method, query, headers, generations, seed, timeout, preset, config_path, output, verbose):
    """Evolve payloads for a single parameter."""
    print_banner()

    if "=" not in param_spec:
        console.print("[red]Error: --param must look like NAME=VALUE[/]")
        sys.exit(2)

    name, raw_value = param_spec.split("=", 1)
    declared_type = ParameterType(param_type)
    try:
        value = parse_value(raw_value, declared_type)
    except ValueError as e:
        console.print(f"[red]Error: cannot read {raw_value!r} as {param_type}: {e}[/]")
        sys.exit(2)

    config = load_config(config_path, preset)
    if seed is not None:
        config.evolution.seed = seed
    if timeout is not None:
        config.network.timeout = timeout
    if verbose:
        config.output.verbose = True

    parameter = Parameter(
        name=name,
        value=value,
        type=declared_type,
        location=ParameterLocation.QUERY if query else ParameterLocation.BODY,
    )
    endpoint = Endpoint(
        url=url,
        method=method.upper(),
        headers=parse_headers(headers),
        parameters=[parameter],
    )

    console.print(f"\n[bold cyan]Target:[/] {endpoint.method} {url}")
    console.print(f"[cyan]Parameter:[/] {name} = {to_text(value)} ({value_kind(value).value})")
    console.print()

    try:
        fuzzer = EvolutionaryFuzzer(config)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/]")
        sys.exit(2)

    with console.status("[bold cyan]Evolving payloads...[/]"):
        result = asyncio.run(fuzzer.evolve(endpoint, parameter, generations))

    display_result(result)

    output = output or config.output.output_file
    if output:
        report = {
            "endpoint": endpoint.to_dict(),
            "parameter": name,
            "result": result.to_dict(),
        }
        with open(output, "w") as f:
            json.dump(report, f, indent=2, default=str)
        console.print(f"\n[green]Results saved to {output}[/]")

    sys.exit(1 if result.exploits else 0)


@cli.command()
@click.option("--name", required=True, help="Parameter name")
@click.option("--type", "param_type", type=click.Choice(PARAM_TYPES), default="string", help="Declared parameter type")
@click.option("--value", default="", help="Original parameter value")
@click.option("--encodings", is_flag=True, help="Show encoded variants of string seeds")
def seeds(name, param_type, value, encodings):
    """Show the seed values generation 0 starts from."""
    declared_type = ParameterType(param_type)
    parameter = Parameter(name=name, value=parse_value(value, declared_type) if value else value, type=declared_type)

    generator = SeedGenerator()
    values = generator.generate(parameter)

    table = Table(title=f"Seeds for {name} ({param_type})")
    table.add_column("#", justify="right")
    table.add_column("Kind")
    table.add_column("Value")
    for i, seed in enumerate(values, 1):
        table.add_row(str(i), value_kind(seed).value, repr(to_text(seed))[:70])
    console.print(table)

    if encodings:
        for seed in values:
            if not isinstance(seed, str) or not seed.strip():
                continue
            console.print(f"\n[bold]{seed!r}[/]")
            for scheme, encoded in Encoder.get_all_encodings(seed).items():
                console.print(f"  [cyan]{scheme}:[/] {encoded[:70]}")


@cli.command()
def version():
    """Show version information."""
    console.print(f"CheckoutForge v{__version__}")
    console.print("Evolutionary payload fuzzing for e-commerce checkout flows")


def main():
    """Main entry point."""
    return cli()


if __name__ == "__main__":
    main()
