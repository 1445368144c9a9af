"""Tests for SPL token helpers and cluster lookups."""

from __future__ import annotations

import struct

import pytest
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from wdk_wallet_solana.wallet.clusters import get_cluster, list_cluster_names
from wdk_wallet_solana.wallet.token import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    create_associated_token_account_idempotent,
    get_associated_token_address,
    transfer_checked,
)


def test_associated_address_is_a_program_address():
    owner, mint = Pubkey.new_unique(), Pubkey.new_unique()

    expected, _bump = Pubkey.find_program_address(
        [bytes(owner), bytes(TOKEN_PROGRAM_ID), bytes(mint)], ASSOCIATED_TOKEN_PROGRAM_ID
    )

    assert get_associated_token_address(owner, mint) == expected
    assert not get_associated_token_address(owner, mint).is_on_curve()


def test_associated_address_depends_on_token_program():
    owner, mint = Pubkey.new_unique(), Pubkey.new_unique()

    assert get_associated_token_address(owner, mint) != get_associated_token_address(
        owner, mint, TOKEN_2022_PROGRAM_ID
    )


def test_create_idempotent_layout():
    payer, owner, mint = Pubkey.new_unique(), Pubkey.new_unique(), Pubkey.new_unique()

    ix = create_associated_token_account_idempotent(payer, owner, mint)

    assert ix.program_id == ASSOCIATED_TOKEN_PROGRAM_ID
    assert bytes(ix.data) == b"\x01"
    assert [meta.pubkey for meta in ix.accounts] == [
        payer,
        get_associated_token_address(owner, mint),
        owner,
        mint,
        SYSTEM_PROGRAM_ID,
        TOKEN_PROGRAM_ID,
    ]
    assert ix.accounts[0].is_signer and ix.accounts[0].is_writable
    assert ix.accounts[1].is_writable and not ix.accounts[1].is_signer


def test_transfer_checked_layout():
    source, mint, dest, owner = (Pubkey.new_unique() for _ in range(4))

    ix = transfer_checked(source, mint, dest, owner, 1_000_000, 6, TOKEN_2022_PROGRAM_ID)

    assert ix.program_id == TOKEN_2022_PROGRAM_ID
    assert struct.unpack("<BQB", bytes(ix.data)) == (12, 1_000_000, 6)
    assert [meta.pubkey for meta in ix.accounts] == [source, mint, dest, owner]
    assert [meta.is_signer for meta in ix.accounts] == [False, False, False, True]
    assert [meta.is_writable for meta in ix.accounts] == [True, False, True, False]


@pytest.mark.parametrize(
    "name, suffix",
    [("mainnet-beta", ""), ("devnet", "?cluster=devnet"), ("localnet", "?cluster=custom")],
)
def test_explorer_links(name, suffix):
    assert get_cluster(name).explorer_tx_url("5ig") == f"https://explorer.solana.com/tx/5ig{suffix}"


def test_unknown_cluster_lists_available_names():
    with pytest.raises(KeyError, match="devnet"):
        get_cluster("moon")
    assert "mainnet-beta" in list_cluster_names()
