from pathlib import Path

import click

from deployment.constants import MARKETPLACE, MARKETPLACE_CONTRACTS, SUPPORTED_DOMAINS

domain_option = click.option(
    "--domain",
    "-d",
    help="Deployment domain; used for obtaining the contract registry",
    type=click.Choice(SUPPORTED_DOMAINS),
    required=False,
)

contract_option = click.option(
    "--contract-name",
    "-c",
    help="Name of the marketplace contract",
    type=click.Choice(MARKETPLACE_CONTRACTS),
    default=MARKETPLACE,
    show_default=True,
)

registry_filepath_option = click.option(
    "--registry-filepath",
    "-f",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    help="Registry filepath if the contract is not part of a common domain registry",
    required=False,
)
