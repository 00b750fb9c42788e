#!/usr/bin/python3
from pathlib import Path

import click

from deployment.constants import MARKETPLACE_CONTRACTS
from deployment.legacy import convert_truffle_artifacts
from deployment.types import MinInt


@click.command()
@click.option(
    "--build-dir",
    "-b",
    help="Truffle build directory holding the contract artifacts",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=Path("build") / "contracts",
    show_default=True,
)
@click.option("--chain-id", help="Chain ID of the truffle deployment", type=MinInt(1), required=True)
@click.option(
    "--output-registry",
    "-o",
    help="Filepath of output registry file",
    type=click.Path(dir_okay=False, exists=False, path_type=Path),
    required=True,
)
@click.option(
    "--all-contracts",
    help="Import every deployed artifact, not only the marketplace contracts",
    is_flag=True,
)
def cli(build_dir, chain_id, output_registry, all_contracts):
    """Import a truffle migration's deployments into a registry."""
    contract_names = None if all_contracts else MARKETPLACE_CONTRACTS
    convert_truffle_artifacts(
        directory=build_dir,
        chain_id=chain_id,
        output_filepath=output_registry,
        contract_names=contract_names,
    )


if __name__ == "__main__":
    cli()
