"""Unit tests for stake pool registry resolution."""

import pytest
from pydantic import ValidationError

from stakeflow.config.pools import (
    StakePoolMetadata,
    find_pool_metadata,
    resolve_stake_pool_id,
)
from stakeflow.models.pool import ReceiptType

from conftest import OTHER_WALLET, POOL_ID


@pytest.fixture
def registry():
    return [
        StakePoolMetadata(name="genesis", stake_pool_address=POOL_ID),
        StakePoolMetadata(
            name="receipts", stake_pool_address=OTHER_WALLET, receipt_type=ReceiptType.RECEIPT
        ),
    ]


class TestResolveStakePoolId:
    """Tests for resolve_stake_pool_id."""

    def test_by_name(self, registry):
        assert resolve_stake_pool_id("receipts", registry) == OTHER_WALLET

    def test_by_registered_address(self, registry):
        assert resolve_stake_pool_id(POOL_ID, registry) == POOL_ID

    def test_unregistered_valid_address(self):
        assert resolve_stake_pool_id(POOL_ID) == POOL_ID

    def test_unknown(self, registry):
        assert resolve_stake_pool_id("unknown pool", registry) is None


class TestPoolMetadata:
    """Tests for StakePoolMetadata."""

    def test_invalid_address_rejected(self):
        with pytest.raises(ValidationError):
            StakePoolMetadata(name="bad", stake_pool_address="not-an-address")

    def test_find(self, registry):
        found = find_pool_metadata(OTHER_WALLET, registry)
        assert found is not None
        assert found.receipt_type == ReceiptType.RECEIPT
        assert find_pool_metadata("missing", registry) is None
