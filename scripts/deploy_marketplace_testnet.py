#!/usr/bin/python3

from ape import project

from deployment.constants import ARTIFACTS_DIR, CONSTRUCTOR_PARAMS_DIR, TESTNET
from deployment.params import Deployer
from deployment.registry import publish_to_domain

VERIFY = False
CONSTRUCTOR_PARAMS_FILEPATH = CONSTRUCTOR_PARAMS_DIR / TESTNET / "marketplace.yml"
DOMAIN_REGISTRY_FILEPATH = ARTIFACTS_DIR / f"{TESTNET}.json"


def main():
    deployer = Deployer.from_yaml(filepath=CONSTRUCTOR_PARAMS_FILEPATH, verify=VERIFY)
    marketplace = deployer.deploy(project.McFaydenNFTMarketplaceUpgradable)
    deployer.finalize(deployments=[marketplace])
    publish_to_domain(
        registry_filepath=deployer.registry_filepath,
        domain_filepath=DOMAIN_REGISTRY_FILEPATH,
    )
