#!/usr/bin/python3
from datetime import datetime, timezone

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, account_option, network_option

from deployment.constants import CONSTRUCTOR_PARAMS_DIR, MARKETPLACE
from deployment.marketplace import upgrade_config, write_params
from deployment.options import domain_option
from deployment.params import Deployer
from deployment.registry import contracts_from_registry, update_implementation
from deployment.utils import get_contract_container, registry_filepath_from_domain


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@domain_option
@click.option(
    "--verify/--no-verify",
    help="Verify the new implementation on the block explorer",
    default=False,
)
@click.option(
    "--autosign",
    help="Automatically sign transactions",
    is_flag=True,
)
def cli(network, account, domain, verify, autosign):
    """
    Deploys a new McFaydenNFTMarketplaceUpgradable implementation and upgrades
    the domain's marketplace proxy to it.
    """
    if not domain:
        raise click.BadOptionUsage(option_name="--domain", message="A domain is required.")

    registry_filepath = registry_filepath_from_domain(domain=domain)
    chain_id = networks.active_provider.chain_id
    contracts = contracts_from_registry(registry_filepath, chain_id=chain_id)
    try:
        proxy = contracts[MARKETPLACE]
    except KeyError:
        raise ValueError(
            f"Contract '{MARKETPLACE}' not found in registry, '{registry_filepath}', "
            f"for chain {chain_id}"
        )

    config = upgrade_config(chain_id=chain_id, timestamp=datetime.now(timezone.utc))
    params_filepath = write_params(
        config=config,
        filepath=CONSTRUCTOR_PARAMS_DIR / domain / f"{config['deployment']['name']}.yml",
    )
    deployer = Deployer.from_yaml(
        filepath=params_filepath,
        verify=verify,
        account=account,
        autosign=autosign,
    )
    container = get_contract_container(MARKETPLACE)
    implementation = deployer.deploy(container)
    marketplace = deployer.upgradeTo(implementation, proxy.address)
    click.secho(
        f"{MARKETPLACE} proxy at {marketplace.address} now points to {implementation.address}",
        fg="green",
    )

    deployer.finalize(deployments=[implementation])
    update_implementation(
        filepath=registry_filepath,
        chain_id=chain_id,
        name=MARKETPLACE,
        implementation=implementation.address,
    )


if __name__ == "__main__":
    cli()
