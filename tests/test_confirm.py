from collections import OrderedDict

import pytest
from ape.utils import ZERO_ADDRESS

from deployment.confirm import _confirm_resolution, _continue
from tests.conftest import MAINTAINER, ROOT_ADMIN


@pytest.fixture
def answers(monkeypatch):
    prompts = list()

    def set_answers(*values):
        replies = iter(values)

        def _input(prompt):
            prompts.append(prompt)
            return next(replies)

        monkeypatch.setattr("builtins.input", _input)
        return prompts

    return set_answers


def test_continue(answers):
    prompts = answers("y")
    _continue()
    assert prompts == ["Continue Y/N? "]


def test_abort(answers):
    answers(" N ")
    with pytest.raises(SystemExit):
        _continue()


def test_confirm_resolution_without_parameters(answers, capsys):
    prompts = answers("y")
    _confirm_resolution(OrderedDict(), "McFaydenNFTMarketplaceUpgradable")
    assert "No constructor parameters" in capsys.readouterr().out
    assert len(prompts) == 1


def test_confirm_resolution_prints_parameters(answers, capsys):
    prompts = answers("y")
    _confirm_resolution(OrderedDict({"_logic": ROOT_ADMIN}), "TransparentUpgradeableProxy")
    assert f"_logic={ROOT_ADMIN}" in capsys.readouterr().out
    assert prompts == ["Deploy TransparentUpgradeableProxy Y/N? "]


def test_zero_address_needs_extra_confirmation(answers):
    prompts = answers("y", "y")
    params = OrderedDict({"maintainer": [ZERO_ADDRESS, 200], "nftContract": MAINTAINER})
    _confirm_resolution(params, "McFaydenNFTMarketplaceUpgradable")
    assert len(prompts) == 2
    assert "Zero Address" in prompts[1]


def test_zero_address_abort(answers):
    answers("y", "n")
    with pytest.raises(SystemExit):
        _confirm_resolution(OrderedDict({"_logic": ZERO_ADDRESS}), "TransparentUpgradeableProxy")
