import os
from pathlib import Path
from typing import List, Optional

import requests
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from deployment.constants import ETHERSCAN_API_KEY_ENVVAR, ETHERSCAN_V2_API_URL
from deployment.registry import ChainId, RegistryEntry, write_registry
from deployment.utils import _load_json


def get_creation_info(api_key: str, chain_id: int, contract_address: ChecksumAddress) -> tuple:
    """Looks up the creation transaction of a contract through the Etherscan v2 API."""
    params = {
        "chainid": chain_id,
        "module": "account",
        "action": "txlist",
        "address": contract_address,
        "page": 1,
        "offset": 1,
        "sort": "asc",
        "apikey": api_key,
    }
    response = requests.get(ETHERSCAN_V2_API_URL, params=params)
    response.raise_for_status()
    data = response.json()

    if data["status"] == "1" and data["result"]:
        # the first transaction of a contract is its creation transaction
        tx = data["result"][0]
        tx_hash = tx["hash"]
        block_number = int(tx["blockNumber"])
        deployer = tx["from"]
    else:
        raise ValueError(f"Could not find contract creation transaction for {contract_address}")

    return tx_hash, block_number, to_checksum_address(deployer)


def _get_api_key() -> str:
    api_key = os.environ.get(ETHERSCAN_API_KEY_ENVVAR)
    if not api_key:
        raise ValueError(f"Please set the {ETHERSCAN_API_KEY_ENVVAR} environment variable.")
    return api_key


def _truffle_deployment(artifact: dict, chain_id: ChainId) -> Optional[dict]:
    # truffle keys deployments by network id, which matches the chain id on public networks
    return artifact.get("networks", {}).get(str(chain_id))


def convert_truffle_artifacts(
    directory: Path,
    chain_id: ChainId,
    output_filepath: Path,
    contract_names: Optional[List[str]] = None,
) -> Path:
    """
    Converts the truffle build artifacts (build/contracts/*.json) deployed on
    chain_id into a contract registry.
    """
    if output_filepath.exists():
        raise FileExistsError(f"Registry already exists at {output_filepath}")

    if not directory.exists():
        raise FileNotFoundError(f"Directory not found at {directory}")

    api_key = _get_api_key()

    entries = list()
    for filepath in sorted(directory.glob("*.json")):
        artifact = _load_json(filepath=filepath)
        name = artifact.get("contractName", filepath.stem)
        if contract_names and name not in contract_names:
            continue

        deployment = _truffle_deployment(artifact, chain_id)
        if not deployment:
            continue

        address = to_checksum_address(deployment["address"])
        tx_hash, block_number, deployer = get_creation_info(
            api_key=api_key, chain_id=chain_id, contract_address=address
        )
        entries.append(
            RegistryEntry(
                chain_id=chain_id,
                name=name,
                address=address,
                abi=artifact["abi"],
                tx_hash=deployment.get("transactionHash", tx_hash),
                block_number=block_number,
                deployer=deployer,
            )
        )
        print(f"(i) Found {name} at {address}")

    if not entries:
        raise ValueError(f"No truffle deployments found for chain id {chain_id} in {directory}")

    write_registry(entries=entries, filepath=output_filepath)
    print(f"Converted truffle artifacts to {output_filepath}")
    return output_filepath
