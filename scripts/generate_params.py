#!/usr/bin/python3
from pathlib import Path

import click

from deployment.constants import CONSTRUCTOR_PARAMS_DIR
from deployment.marketplace import (
    MaintainerCommission,
    MarketplaceParams,
    marketplace_config,
    to_commission,
    write_params,
)
from deployment.options import contract_option
from deployment.types import ChecksumAddress, MinInt, Percentage


@click.command()
@click.option("--name", "-n", help="Deployment name", type=click.STRING, required=True)
@click.option("--chain-id", help="Chain ID of the target network", type=MinInt(1), required=True)
@click.option("--root-admin", help="Marketplace root admin", type=ChecksumAddress(), required=True)
@click.option("--maintainer", help="Maintainer address", type=ChecksumAddress(), required=True)
@click.option(
    "--secondary-commission",
    help="Maintainer commission on secondary sales, in percent (e.g. 2.00)",
    type=Percentage(),
    required=True,
)
@click.option(
    "--primary-commission",
    help="Commission on primary sales, in percent (e.g. 2.00)",
    type=Percentage(),
    required=True,
)
@click.option("--nft-contract", help="NFT contract address", type=ChecksumAddress(), required=True)
@contract_option
@click.option(
    "--output",
    "-o",
    help="Output params file; defaults to constructor_params/<name>.yml",
    type=click.Path(dir_okay=False, exists=False, path_type=Path),
    required=False,
)
def cli(
    name,
    chain_id,
    root_admin,
    maintainer,
    secondary_commission,
    primary_commission,
    nft_contract,
    contract_name,
    output,
):
    """Generate a marketplace proxy deployment params file."""
    params = MarketplaceParams(
        root_admin=root_admin,
        maintainer=MaintainerCommission(
            address=maintainer, commission=to_commission(secondary_commission)
        ),
        primary_commission=to_commission(primary_commission),
        nft_contract=nft_contract,
    )
    config = marketplace_config(
        params=params,
        chain_id=chain_id,
        filename=f"{name}.json",
        contract_name=contract_name,
        name=name,
    )
    click.echo(f"{contract_name}.initialize{tuple(params.initializer_args())}")
    write_params(config=config, filepath=output or CONSTRUCTOR_PARAMS_DIR / f"{name}.yml")


if __name__ == "__main__":
    cli()
