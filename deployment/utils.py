import json
import os
from pathlib import Path
from typing import Dict, List

import yaml
from ape import networks, project
from ape.contracts import ContractContainer, ContractInstance

from deployment.constants import ARTIFACTS_DIR, ETHERSCAN_API_KEY_ENVVAR
from deployment.networks import is_local_network


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def get_artifact_filepath(config: Dict) -> Path:
    """Returns the filepath of the artifact file."""
    artifact_config = config.get("artifacts", {})
    artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
    filename = artifact_config.get("filename")
    if not filename:
        raise ValueError("artifact filename is not set in params file.")
    return artifact_dir / filename


def _validate_config_fields(config: Dict) -> int:
    """Checks the required params file fields and returns the configured chain id."""
    deployment = config.get("deployment")
    if not deployment:
        raise ValueError("deployment is not set in params file.")

    config_chain_id = deployment.get("chain_id")
    if not config_chain_id:
        raise ValueError("chain_id is not set in params file.")

    contracts = config.get("contracts")
    if not contracts:
        raise ValueError("Constructor parameters file missing 'contracts' field.")

    return int(config_chain_id)


def validate_config(config: Dict) -> Path:
    """
    Checks that the deployment has not already been published for
    the chain_id specified in the params file.
    """
    print("Validating parameters YAML...")
    config_chain_id = _validate_config_fields(config)

    provider_chain_id = networks.provider.network.chain_id
    chain_mismatch = config_chain_id != provider_chain_id
    if chain_mismatch and not is_local_network():
        raise ValueError(
            f"chain_id in params file ({config_chain_id}) does not match "
            f"chain_id of current network ({provider_chain_id})."
        )

    registry_filepath = get_artifact_filepath(config=config)
    if not registry_filepath.exists():
        return registry_filepath

    registry_chain_ids = map(int, _load_json(registry_filepath).keys())
    if config_chain_id in registry_chain_ids:
        raise ValueError(f"Deployment is already published for chain_id {config_chain_id}.")

    return registry_filepath


def _check_etherscan_key() -> None:
    try:
        import ape_etherscan  # noqa: F401
    except ImportError:
        raise ImportError("Please install the ape-etherscan plugin to use this script.")
    if not os.environ.get(ETHERSCAN_API_KEY_ENVVAR):
        raise ValueError(f"{ETHERSCAN_API_KEY_ENVVAR} is not set.")


def _check_infura_key() -> None:
    try:
        from ape_infura.provider import _ENVIRONMENT_VARIABLE_NAMES
    except ImportError:
        raise ImportError("Please install the ape-infura plugin to use this script.")
    if not any(os.environ.get(envvar) for envvar in _ENVIRONMENT_VARIABLE_NAMES):
        raise ValueError(
            f"No Infura API key found in "
            f"environment variables: {', '.join(_ENVIRONMENT_VARIABLE_NAMES)}"
        )


def check_plugins() -> None:
    """
    Checks the explorer and provider plugins needed for a live deployment.
    Local deployments need neither.
    """
    if is_local_network():
        return
    print("Checking plugins...")
    _check_etherscan_key()
    if networks.provider.name == "infura":
        _check_infura_key()


def verify_contracts(contracts: List[ContractInstance]) -> None:
    explorer = networks.provider.network.explorer
    for instance in contracts:
        print(f"(i) Verifying {instance.contract_type.name}...")
        explorer.publish_contract(instance.address)


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            return getattr(dependency_api, contract)
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def registry_filepath_from_domain(domain: str) -> Path:
    p = ARTIFACTS_DIR / f"{domain}.json"
    if not p.exists():
        raise ValueError(f"No registry found for domain '{domain}'")

    return p


def get_chain_name(chain_id: int) -> str:
    """Returns the name of the chain given its chain ID."""
    for ecosystem_name, ecosystem in networks.ecosystems.items():
        for network_name, network in ecosystem.networks.items():
            if network.chain_id == chain_id:
                return f"{ecosystem_name} {network_name}"
    raise ValueError(f"Chain ID {chain_id} not found in networks.")
