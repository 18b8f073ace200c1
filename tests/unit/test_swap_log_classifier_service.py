import pytest

from core.domain.entities.classified_transaction_entity import TradeType
from core.domain.entities.swap_event_entity import SwapEventEntity, SwapProtocol
from core.domain.errors import UpstreamServiceError
from core.services.swap_log_classifier_service import v2_trade_type, v3_trade_type

from swap_fixtures import (
    DAI,
    ONE_ETH,
    OTHER_TOKEN,
    POOL,
    POOL_B,
    ROUTER,
    SENDER,
    STRANGER,
    TOKEN,
    USDC,
    WBTC,
    WETH,
    FakeChainRepository,
    make_receipt,
    sync_log,
    transfer_log,
    v2_swap_log,
    v3_swap_log,
)


def weth_token_v3_receipt(**kwargs):
    # WETH in (token0), TOKEN out (token1)
    return make_receipt(
        [
            transfer_log(WETH, SENDER, POOL, ONE_ETH),
            transfer_log(TOKEN, POOL, SENDER, 500 * ONE_ETH),
            v3_swap_log(POOL, ONE_ETH, -500 * ONE_ETH),
        ],
        **kwargs,
    )


class TestDirectionRules:
    def test_v3_counter_equal_to_amount0_is_sell(self):
        swap = SwapEventEntity(protocol="V3", pool_address=POOL, amount0=5, amount1=9)
        assert v3_trade_type(5, swap) == TradeType.SELL
        assert v3_trade_type(9, swap) == TradeType.BUY

    def test_v2_counter_equal_to_amount0_is_buy(self):
        swap = SwapEventEntity(protocol="V2", pool_address=POOL, amount0=5, amount1=9)
        assert v2_trade_type(5, swap) == TradeType.BUY
        assert v2_trade_type(9, swap) == TradeType.SELL


class TestEthBranch:
    @pytest.mark.asyncio
    async def test_v3_weth_trade_classifies_sell(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)})
        trade = await make_classifier(chain).classify(weth_token_v3_receipt())

        assert trade is not None
        assert trade.trade_type == TradeType.SELL.value
        assert trade.protocol == SwapProtocol.V3.value
        assert trade.token_address == TOKEN
        assert trade.token_symbol == "TST"
        assert trade.token_amount == pytest.approx(500.0)
        assert trade.eth_amount == pytest.approx(1.0)
        assert trade.usd_value == pytest.approx(2000.0)
        assert trade.token_price_usd == pytest.approx(4.0)
        assert trade.eth_price == 2000.0
        assert trade.btc_price == 60000.0
        assert trade.multi_swap is False
        assert trade.eth_reserve is None

    @pytest.mark.asyncio
    async def test_v2_weth_trade_classifies_buy_with_reserves(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)})
        receipt = make_receipt(
            [
                transfer_log(WETH, SENDER, POOL, ONE_ETH),
                transfer_log(TOKEN, POOL, SENDER, 500 * ONE_ETH),
                sync_log(POOL, 100 * ONE_ETH, 50_000 * ONE_ETH),
                v2_swap_log(POOL, ONE_ETH, 0, 0, 500 * ONE_ETH),
            ]
        )

        trade = await make_classifier(chain).classify(receipt)

        assert trade is not None
        assert trade.is_buy
        assert trade.eth_reserve == pytest.approx(100.0)
        assert trade.token_reserve == pytest.approx(50_000.0)
        assert trade.token_total_supply == 1e9


class TestStableBranches:
    @pytest.mark.asyncio
    async def test_stable_only_trade(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (TOKEN, USDC)})
        receipt = make_receipt(
            [
                transfer_log(USDC, SENDER, POOL, 2000 * 10 ** 6),
                transfer_log(TOKEN, POOL, SENDER, 1000 * ONE_ETH),
                v3_swap_log(POOL, -1000 * ONE_ETH, 2000 * 10 ** 6),
            ]
        )

        trade = await make_classifier(chain).classify(receipt)

        assert trade is not None
        assert trade.trade_type == TradeType.BUY.value
        assert trade.usd_value == pytest.approx(2000.0)
        assert trade.token_price_usd == pytest.approx(2.0)
        assert trade.eth_amount == 0.0
        assert trade.multi_swap is True

    @pytest.mark.asyncio
    async def test_multi_hop_weth_and_stable_uses_stable_leg(self, make_classifier):
        # USDC -> WETH through an all-quote pool (skipped), then WETH -> TOKEN
        chain = FakeChainRepository(pools={POOL: (USDC, WETH), POOL_B: (TOKEN, WETH)})
        receipt = make_receipt(
            [
                transfer_log(USDC, SENDER, POOL, 3000 * 10 ** 6),
                transfer_log(WETH, POOL, POOL_B, ONE_ETH),
                v3_swap_log(POOL, 3000 * 10 ** 6, -ONE_ETH),
                transfer_log(TOKEN, POOL_B, SENDER, 500 * ONE_ETH),
                v2_swap_log(POOL_B, 0, ONE_ETH, 500 * ONE_ETH, 0),
            ]
        )

        classifier = make_classifier(chain)
        trades = await classifier.classify_all(receipt)

        assert len(trades) == 1
        trade = trades[0]
        assert trade.pool_address == POOL_B
        assert trade.multi_swap is True
        assert trade.usd_value == pytest.approx(3000.0)
        assert trade.eth_amount == pytest.approx(1.0)
        assert trade.token_price_usd == pytest.approx(6.0)
        assert trade.is_buy

    @pytest.mark.asyncio
    async def test_wbtc_and_stable_is_multi_hop_without_eth_leg(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (TOKEN, WBTC)})
        receipt = make_receipt(
            [
                transfer_log(DAI, SENDER, ROUTER, 6000 * ONE_ETH),
                transfer_log(WBTC, ROUTER, POOL, 10 ** 7),
                transfer_log(TOKEN, POOL, SENDER, 300 * ONE_ETH),
                v3_swap_log(POOL, -300 * ONE_ETH, 10 ** 7),
            ]
        )

        trade = await make_classifier(chain).classify(receipt)

        assert trade is not None
        assert trade.multi_swap is True
        assert trade.eth_amount == 0.0
        assert trade.usd_value == pytest.approx(6000.0)
        assert trade.token_price_usd == pytest.approx(20.0)


class TestSkips:
    @pytest.mark.asyncio
    async def test_failed_receipt(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)})
        assert await make_classifier(chain).classify(weth_token_v3_receipt(status=False)) is None

    @pytest.mark.asyncio
    async def test_plain_transfer(self, make_classifier):
        chain = FakeChainRepository()
        receipt = make_receipt([transfer_log(TOKEN, SENDER, STRANGER, ONE_ETH)])

        classifier = make_classifier(chain)
        assert classifier.is_plain_transfer(receipt)
        assert await classifier.classify(receipt) is None

    @pytest.mark.asyncio
    async def test_no_swap_log(self, make_classifier):
        chain = FakeChainRepository()
        receipt = make_receipt(
            [transfer_log(TOKEN, SENDER, STRANGER, 1), transfer_log(TOKEN, STRANGER, SENDER, 1)]
        )
        assert await make_classifier(chain).classify(receipt) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tokens", [(WETH, USDC), (TOKEN, OTHER_TOKEN)])
    async def test_ambiguous_pool(self, make_classifier, tokens):
        chain = FakeChainRepository(pools={POOL: tokens})
        assert await make_classifier(chain).classify(weth_token_v3_receipt()) is None

    @pytest.mark.asyncio
    async def test_pool_pair_is_memoized(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)})
        classifier = make_classifier(chain)

        await classifier.classify(weth_token_v3_receipt(tx_hash="0x1"))
        await classifier.classify(weth_token_v3_receipt(tx_hash="0x2"))

        assert chain.pool_calls == [POOL]

    @pytest.mark.asyncio
    async def test_missing_token_metadata(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)}, metadata={})
        assert await make_classifier(chain).classify(weth_token_v3_receipt()) is None

    @pytest.mark.asyncio
    async def test_missing_block_timestamp(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)}, block_timestamp=None)
        assert await make_classifier(chain).classify(weth_token_v3_receipt()) is None

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_none(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)}, block_timestamp=RuntimeError("boom"))
        assert await make_classifier(chain).classify(weth_token_v3_receipt()) is None

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self, make_classifier):
        chain = FakeChainRepository(
            pools={POOL: (WETH, TOKEN)}, block_timestamp=UpstreamServiceError("rpc", "down")
        )
        with pytest.raises(UpstreamServiceError):
            await make_classifier(chain).classify(weth_token_v3_receipt())


class TestTokenMatching:
    def _receipt(self, token_value):
        # token moves between two parties unrelated to the sender, so only amount matching can find it
        return make_receipt(
            [
                transfer_log(WETH, SENDER, POOL, ONE_ETH),
                transfer_log(TOKEN, POOL, STRANGER, token_value),
                v3_swap_log(POOL, ONE_ETH, -1000),
            ],
            to=None,
        )

    def test_tolerance_boundary_is_strict(self, make_classifier):
        classifier = make_classifier(FakeChainRepository())
        assert classifier.within_tolerance(91, 100)
        assert not classifier.within_tolerance(90, 100)
        assert not classifier.within_tolerance(110, 100)

    @pytest.mark.asyncio
    async def test_within_tolerance_uses_transfer_value(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)})
        trade = await make_classifier(chain).classify(self._receipt(950))

        assert trade is not None
        assert trade.token_amount == pytest.approx(950 / 10 ** 18)

    @pytest.mark.asyncio
    async def test_exactly_ten_percent_does_not_match(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)})
        assert await make_classifier(chain).classify(self._receipt(900)) is None

    @pytest.mark.asyncio
    async def test_tolerance_is_tunable(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)})
        assert await make_classifier(chain, tolerance_pct=15).classify(self._receipt(900)) is not None

    @pytest.mark.asyncio
    async def test_sender_fallback_uses_expected_amount(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)})
        receipt = make_receipt(
            [
                transfer_log(WETH, SENDER, POOL, ONE_ETH),
                transfer_log(TOKEN, POOL, SENDER, 10),
                v3_swap_log(POOL, ONE_ETH, -1000),
            ]
        )

        trade = await make_classifier(chain).classify(receipt)

        assert trade is not None
        assert trade.token_amount == pytest.approx(1000 / 10 ** 18)


class TestRequestedToken:
    def _two_pool_receipt(self):
        # OTHER -> WETH through POOL, then WETH -> TOKEN through POOL_B
        return make_receipt(
            [
                transfer_log(OTHER_TOKEN, SENDER, POOL, 7000 * ONE_ETH),
                transfer_log(WETH, POOL, POOL_B, ONE_ETH),
                v2_swap_log(POOL, 7000 * ONE_ETH, 0, 0, ONE_ETH),
                transfer_log(TOKEN, POOL_B, SENDER, 500 * ONE_ETH),
                v2_swap_log(POOL_B, ONE_ETH, 0, 0, 500 * ONE_ETH),
            ]
        )

    def _chain(self):
        return FakeChainRepository(pools={POOL: (OTHER_TOKEN, WETH), POOL_B: (WETH, TOKEN)})

    @pytest.mark.asyncio
    async def test_each_pool_is_attributed_to_its_own_base_token(self, make_classifier):
        trades = await make_classifier(self._chain()).classify_all(self._two_pool_receipt())

        assert [(t.pool_address, t.token_address) for t in trades] == [(POOL, OTHER_TOKEN), (POOL_B, TOKEN)]
        assert trades[0].token_amount == pytest.approx(7000.0)
        assert trades[1].token_amount == pytest.approx(500.0)

    @pytest.mark.asyncio
    async def test_classify_returns_trade_of_requested_token(self, make_classifier):
        checksum_like = "0x" + TOKEN[2:].upper()

        trade = await make_classifier(self._chain()).classify(self._two_pool_receipt(), token_address=checksum_like)

        assert trade is not None
        assert trade.token_address == TOKEN
        assert trade.pool_address == POOL_B
        assert trade.token_amount == pytest.approx(500.0)
        assert trade.usd_value == pytest.approx(2000.0)
        assert trade.is_buy

    @pytest.mark.asyncio
    async def test_token_absent_from_receipt(self, make_classifier):
        trade = await make_classifier(self._chain()).classify(self._two_pool_receipt(), token_address=STRANGER)
        assert trade is None

    @pytest.mark.asyncio
    async def test_transfer_of_another_token_is_not_matched(self, make_classifier):
        chain = FakeChainRepository(pools={POOL: (WETH, TOKEN)})
        receipt = make_receipt(
            [
                transfer_log(WETH, SENDER, POOL, ONE_ETH),
                transfer_log(OTHER_TOKEN, POOL, SENDER, 500 * ONE_ETH),
                v3_swap_log(POOL, ONE_ETH, -500 * ONE_ETH),
            ]
        )

        assert await make_classifier(chain).classify(receipt) is None
