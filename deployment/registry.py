import json
import shutil
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

from ape import networks
from ape.contracts import ContractInstance
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from eth_typing import ABI

from deployment.utils import _load_json, get_contract_container

ChainId = int
ContractName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """
    A single deployed contract. Proxied contracts are registered under the
    proxy address with the logic contract address as 'implementation'.
    """

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    abi: ABI
    tx_hash: str
    block_number: int
    deployer: str
    implementation: Optional[ChecksumAddress] = None


def _get_abi(contract_instance: ContractInstance) -> ABI:
    """Returns the ABI of a contract instance."""
    contract_abi = list()
    for entry in contract_instance.contract_type.abi:
        contract_abi.append(entry.model_dump(mode="json", by_alias=True))
    return contract_abi


def _get_implementation(contract_instance: ContractInstance) -> Optional[ChecksumAddress]:
    proxy_info = networks.provider.network.ecosystem.get_proxy_info(contract_instance.address)
    if not proxy_info:
        return None
    return to_checksum_address(proxy_info.target)


def _get_entry(contract_instance: ContractInstance) -> RegistryEntry:
    """Proxied instances are registered under the type they are wrapped as."""
    receipt = contract_instance.receipt
    return RegistryEntry(
        name=contract_instance.contract_type.name,
        address=to_checksum_address(contract_instance.address),
        abi=_get_abi(contract_instance),
        chain_id=receipt.chain_id,
        tx_hash=receipt.txn_hash,
        block_number=receipt.block_number,
        deployer=receipt.transaction.sender,
        implementation=_get_implementation(contract_instance),
    )


def read_registry(filepath: Path) -> List[RegistryEntry]:
    data = _load_json(filepath)
    registry_entries = list()
    for chain_id, entries in data.items():
        for contract_name, artifacts in entries.items():
            registry_entry = RegistryEntry(
                chain_id=int(chain_id),
                name=contract_name,
                address=artifacts["address"],
                abi=artifacts["abi"],
                tx_hash=artifacts["tx_hash"],
                block_number=artifacts["block_number"],
                deployer=artifacts["deployer"],
                implementation=artifacts.get("implementation"),
            )
            registry_entries.append(registry_entry)
    return registry_entries


def _entry_data(entry: RegistryEntry) -> Dict:
    entry_abi = list(entry.abi)
    entry_abi.sort(key=lambda d: (d["type"], d.get("name", "")))
    data = {
        "address": entry.address,
        "abi": entry_abi,
        "tx_hash": entry.tx_hash,
        "block_number": int(entry.block_number),
        "deployer": entry.deployer,
    }
    if entry.implementation:
        data["implementation"] = entry.implementation
    return data


def write_registry(entries: List[RegistryEntry], filepath: Path, silent: bool = False) -> Path:
    """Writes a contract registry to a file."""

    if not entries:
        print("No entries provided.")
        return filepath

    # common order keeps registry diffs readable
    entries.sort(key=lambda entry: (str(entry.chain_id), entry.name))

    data = defaultdict(dict)
    for entry in entries:
        data[str(entry.chain_id)][entry.name] = _entry_data(entry)

    filepath.parent.mkdir(parents=True, exist_ok=True)

    if filepath.exists():
        if not silent:
            print(f"Updating existing registry at {filepath}.")
        existing_data = _load_json(filepath)

        if any(chain_id in existing_data for chain_id in data):
            filepath = filepath.with_suffix(".unmerged.json")
            if not silent:
                print(
                    "Cannot merge registries with overlapping chain IDs.\n"
                    f"Writing to {filepath} to avoid overwriting existing data."
                )
        else:
            existing_data.update(data)
            data = existing_data
    elif not silent:
        print(f"Creating new registry at {filepath}.")

    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)

    return filepath


def registry_from_ape_deployments(
    deployments: List[ContractInstance], output_filepath: Path
) -> Path:
    """Creates a contract registry from ape deployments."""
    entries = [_get_entry(contract_instance=instance) for instance in deployments]
    output_filepath = write_registry(entries=entries, filepath=output_filepath)
    print(f"(i) Registry written to {output_filepath}!")
    return output_filepath


def contracts_from_registry(filepath: Path, chain_id: ChainId) -> Dict[str, ContractInstance]:
    """Returns a dictionary of contract instances from a contract registry."""
    deployments = dict()
    for registry_entry in read_registry(filepath=filepath):
        if registry_entry.chain_id != chain_id:
            continue
        contract_container = get_contract_container(registry_entry.name)
        deployments[registry_entry.name] = contract_container.at(registry_entry.address)
    return deployments



def _rewrite_registry(entries: List[RegistryEntry], filepath: Path) -> Path:
    """Replaces the contents of a registry file with the given entries."""
    temp_filepath = filepath.with_suffix(".temp.json")
    if temp_filepath.exists():
        temp_filepath.unlink()
    write_registry(entries=entries, filepath=temp_filepath, silent=True)
    shutil.move(temp_filepath, filepath)
    return filepath


def _select_published_entry(
    published_entry: RegistryEntry,
    new_entry: RegistryEntry,
    domain_filepath: Path,
    registry_filepath: Path,
) -> RegistryEntry:
    print(
        f"\n! {new_entry.name} on chain id {new_entry.chain_id} "
        f"is already published in {domain_filepath}:"
    )
    print(f"[1]: keep {published_entry.address} from {domain_filepath}")
    print(f"[2]: use {new_entry.address} from {registry_filepath}")
    print("[A]: Abort publishing")

    answer = None
    while answer not in ("1", "2", "A"):
        answer = input("Resolution, ['1', '2', 'A']? ")

    if answer == "A":
        print("Publishing aborted!")
        exit(-1)
    return published_entry if answer == "1" else new_entry


def publish_to_domain(registry_filepath: Path, domain_filepath: Path) -> Path:
    """
    Adds the entries of a deployment registry to a domain registry. An entry that
    conflicts with an already published one is resolved by the operator.
    """
    if not domain_filepath.exists():
        shutil.copy(registry_filepath, domain_filepath)
        print(f"(i) Created domain registry at {domain_filepath}")
        return domain_filepath

    published = {(entry.chain_id, entry.name): entry for entry in read_registry(domain_filepath)}
    for entry in read_registry(registry_filepath):
        key = (entry.chain_id, entry.name)
        published_entry = published.get(key)
        if published_entry and published_entry != entry:
            entry = _select_published_entry(
                published_entry=published_entry,
                new_entry=entry,
                domain_filepath=domain_filepath,
                registry_filepath=registry_filepath,
            )
        published[key] = entry

    _rewrite_registry(entries=list(published.values()), filepath=domain_filepath)
    print(f"(i) Published {registry_filepath} to {domain_filepath}")
    return domain_filepath


def update_implementation(
    filepath: Path, chain_id: ChainId, name: ContractName, implementation: ChecksumAddress
) -> Path:
    """Records the new implementation of an upgraded proxy in a registry."""
    entries = read_registry(filepath=filepath)
    for index, entry in enumerate(entries):
        if entry.chain_id == chain_id and entry.name == name:
            entries[index] = entry._replace(implementation=to_checksum_address(implementation))
            break
    else:
        raise ValueError(f"No entry for {name} on chain {chain_id} in {filepath}")

    _rewrite_registry(entries=entries, filepath=filepath)
    print(f"(i) {name} implementation set to {implementation} in {filepath}")
    return filepath
