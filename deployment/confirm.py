from collections import OrderedDict
from typing import Any

from ape.utils import ZERO_ADDRESS


def _abort_on_no(prompt: str) -> None:
    """Exits the deployment when the operator answers 'n'."""
    answer = input(prompt)
    if answer.lower().strip() == "n":
        print("Aborting deployment!")
        exit(-1)


def _confirm_deployment(contract_name: str) -> None:
    """Asks the user to confirm the deployment of a single contract."""
    _abort_on_no(f"Deploy {contract_name} Y/N? ")


def _continue() -> None:
    """Asks the user to continue."""
    _abort_on_no("Continue Y/N? ")


def _confirm_zero_address() -> None:
    _abort_on_no("Zero Address detected for deployment parameter; Continue? Y/N? ")


def _contains_zero_address(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return any(_contains_zero_address(v) for v in value)
    return value == ZERO_ADDRESS


def _confirm_resolution(resolved_params: OrderedDict, contract_name: str) -> None:
    """Asks the user to confirm the resolved constructor parameters for a single contract."""
    if len(resolved_params) == 0:
        print(f"\n(i) No constructor parameters for {contract_name}")
        _confirm_deployment(contract_name)
        return

    print(f"\nConstructor parameters for {contract_name}")
    for name, resolved_value in resolved_params.items():
        print(f"\t{name}={resolved_value}")
    _confirm_deployment(contract_name)
    if _contains_zero_address(list(resolved_params.values())):
        _confirm_zero_address()
