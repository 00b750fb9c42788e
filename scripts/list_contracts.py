#!/usr/bin/python3

from itertools import groupby
from typing import List, Optional, Tuple

import click
from ape.cli import ConnectedProviderCommand

from deployment.constants import ARTIFACTS_DIR, SUPPORTED_DOMAINS
from deployment.options import domain_option
from deployment.registry import RegistryEntry, read_registry
from deployment.utils import get_chain_name


def _format_chain_name(chain_name: str) -> str:
    """Format the chain name to capitalize each word and join with slashes."""
    return "/".join(word.capitalize() for word in chain_name.split())


def _get_registry_entries(domain: Optional[str] = None) -> List[Tuple[str, List[RegistryEntry]]]:
    """Parse the registry files for the given domain or all domains with a registry."""
    registry_entries = list()
    for supported_domain in SUPPORTED_DOMAINS:
        if domain and domain != supported_domain:
            continue
        registry_filepath = ARTIFACTS_DIR / f"{supported_domain}.json"
        if not registry_filepath.exists():
            continue
        registry_entries.append((supported_domain, read_registry(filepath=registry_filepath)))
    return registry_entries


def _display_registry_entries(registry_entries: List[Tuple[str, List[RegistryEntry]]]) -> None:
    """Display registry entries grouped by chain ID."""
    for domain, entries in registry_entries:
        click.secho(f"\n{domain.capitalize()} Domain", fg="green")

        for chain_id, chain_entries in groupby(entries, key=lambda e: e.chain_id):
            chain_name = _format_chain_name(get_chain_name(chain_id))
            click.secho(f"    {chain_name}", fg="yellow")

            for index, entry in enumerate(chain_entries, start=1):
                line = f"        {index}. {entry.name} {entry.address}"
                if entry.implementation:
                    line += f" (implementation {entry.implementation})"
                click.secho(line, fg="cyan")


@click.command(cls=ConnectedProviderCommand, name="list-contracts")
@domain_option
def cli(domain):
    """List all contracts in the registries. Optionally filter by domain."""
    _display_registry_entries(_get_registry_entries(domain))


if __name__ == "__main__":
    cli()
