from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from core.domain.entities.classified_transaction_entity import ClassifiedTransactionEntity, TradeType
from core.domain.entities.receipt_entity import LogEntryEntity, ReceiptEntity
from core.domain.entities.swap_event_entity import PoolPairEntity, SwapEventEntity, SwapProtocol
from core.domain.entities.token_metadata_entity import TokenMetadataEntity
from core.domain.entities.transfer_match_entity import AssetRole, AssetTransferMatch, CounterAssetKind
from core.domain.errors import UpstreamServiceError
from core.repositories.chain_repository import ChainRepository
from core.services.price_cache_service import BTC, ETH
from core.services.price_resolver_service import PriceResolverService
from core.services.swap_log_decoder_service import SwapLogDecoderService


def v2_trade_type(counter_value: int, swap: SwapEventEntity) -> TradeType:
    # V2 amount0 is what entered the pool: quote in means the token was bought
    return TradeType.BUY if counter_value == swap.amount0 else TradeType.SELL


def v3_trade_type(counter_value: int, swap: SwapEventEntity) -> TradeType:
    return TradeType.SELL if counter_value == swap.amount0 else TradeType.BUY


DIRECTION_RULES: Dict[SwapProtocol, Callable[[int, SwapEventEntity], TradeType]] = {
    SwapProtocol.V2: v2_trade_type,
    SwapProtocol.V3: v3_trade_type,
}


@dataclass(frozen=True)
class SwapBranch:
    """
    Settlement plan of one swap.

    counter:   quote leg whose value equals one of the swap amounts (drives direction and token matching)
    usd_leg:   stable leg used as USD basis, if any
    eth_leg:   WETH leg giving the ETH amount, if any
    """

    kind: CounterAssetKind
    counter: AssetTransferMatch
    usd_leg: Optional[AssetTransferMatch]
    eth_leg: Optional[AssetTransferMatch]
    multi_swap: bool


class SwapLogClassifierService:
    """
    Turns a transaction receipt into the DEX trade(s) of the traded token.

    Steps per swap log:
      1) resolve the pool into (base, quote); pools with two quote assets or none are skipped
      2) decode the V2/V3 payload
      3) pick the settlement branch (ETH, ETH+stable, BTC+stable, stable)
      4) find the base token transfer: exact amount, then within tolerance, then sender/recipient
      5) read metadata and reference prices, derive amounts and direction

    Missing data yields no trade. Unexpected errors are logged and yield no trade.
    """

    def __init__(
        self,
        *,
        chain_repository: ChainRepository,
        price_resolver: PriceResolverService,
        weth_address: str,
        wbtc_address: str,
        stable_addresses: Sequence[str],
        quote_addresses: Sequence[str],
        v2_swap_topic: str,
        v3_swap_topic: str,
        transfer_topic: str,
        sync_topic: str,
        match_tolerance_pct: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._chain = chain_repository
        self._prices = price_resolver
        self._weth = weth_address.lower()
        self._wbtc = wbtc_address.lower()
        self._stables = [a.lower() for a in stable_addresses]
        self._quotes = {a.lower() for a in quote_addresses}
        self._swap_topics = {
            v2_swap_topic.lower(): SwapProtocol.V2,
            v3_swap_topic.lower(): SwapProtocol.V3,
        }
        self._transfer_topic = transfer_topic.lower()
        self._sync_topic = sync_topic.lower()
        self._tolerance_pct = float(match_tolerance_pct)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._pairs: Dict[str, Optional[PoolPairEntity]] = {}
        self._branch_handlers: Dict[CounterAssetKind, Callable[..., SwapBranch]] = {
            CounterAssetKind.ETH: self._eth_branch,
            CounterAssetKind.ETH_STABLE: self._eth_stable_branch,
            CounterAssetKind.BTC_STABLE: self._btc_stable_branch,
            CounterAssetKind.STABLE: self._stable_branch,
        }

    async def classify(
        self,
        receipt: ReceiptEntity,
        *,
        token_address: Optional[str] = None,
        historical: bool = False,
    ) -> Optional[ClassifiedTransactionEntity]:
        """
        First valid trade of the receipt in log order, or None.

        With `token_address`, only a trade of that token is returned.
        """
        trades = await self.classify_all(receipt, token_address=token_address, historical=historical)
        return trades[0] if trades else None

    async def classify_all(
        self,
        receipt: ReceiptEntity,
        *,
        token_address: Optional[str] = None,
        historical: bool = False,
    ) -> List[ClassifiedTransactionEntity]:
        token = token_address.lower() if token_address else None
        try:
            return await self._classify_receipt(receipt, token, historical)
        except UpstreamServiceError:
            raise
        except Exception as exc:
            self._logger.exception("Classification failed tx=%s: %s", receipt.transaction_hash, exc)
            return []

    async def _classify_receipt(
        self, receipt: ReceiptEntity, token: Optional[str], historical: bool
    ) -> List[ClassifiedTransactionEntity]:
        if not receipt.status:
            self._logger.debug("Skipping failed tx=%s", receipt.transaction_hash)
            return []
        if self.is_plain_transfer(receipt):
            return []

        swap_logs = [(log, self._swap_topics[log.topic0]) for log in receipt.logs if log.topic0 in self._swap_topics]
        if not swap_logs:
            return []
        if len(swap_logs) > 1:
            self._logger.warning(
                "Receipt tx=%s routes through %s pools", receipt.transaction_hash, len(swap_logs)
            )

        trades: List[ClassifiedTransactionEntity] = []
        for log, protocol in swap_logs:
            pair = await self._resolve_pair(log.address)
            if pair is None:
                continue
            if token is not None and pair.base_token != token:
                self._logger.debug(
                    "Skipping pool %s of tx=%s: trades %s", pair.pool_address, receipt.transaction_hash, pair.base_token
                )
                continue
            trade = await self._classify_swap(receipt, log, protocol, pair, historical)
            if trade is not None:
                trades.append(trade)
        return trades

    def is_plain_transfer(self, receipt: ReceiptEntity) -> bool:
        if len(receipt.logs) != 1:
            return False
        only = receipt.logs[0]
        return only.topic0 == self._transfer_topic and only.has_data

    # ---------------------------------------------------------------- pool pair

    async def _resolve_pair(self, pool_address: str) -> Optional[PoolPairEntity]:
        pool = pool_address.lower()
        if pool in self._pairs:
            return self._pairs[pool]

        pair = None
        tokens = await self._chain.get_pool_tokens(pool)
        if tokens is None:
            self._logger.debug("Pool %s has no token pair", pool)
        else:
            pair = self.split_pair(pool, tokens)

        self._pairs[pool] = pair
        return pair

    def split_pair(self, pool: str, tokens: Tuple[str, str]) -> Optional[PoolPairEntity]:
        token0, token1 = tokens[0].lower(), tokens[1].lower()
        q0, q1 = token0 in self._quotes, token1 in self._quotes
        if q0 == q1:
            self._logger.warning(
                "Ambiguous pool %s (%s/%s): %s quote assets", pool, token0, token1, "two" if q0 else "no"
            )
            return None
        return PoolPairEntity(
            pool_address=pool,
            base_token=token1 if q0 else token0,
            quote_token=token0 if q0 else token1,
            quote_is_token0=q0,
        )

    # ---------------------------------------------------------------- transfers

    def _transfers(self, receipt: ReceiptEntity) -> Iterable[Tuple[LogEntryEntity, int]]:
        for log in receipt.logs:
            if log.topic0 != self._transfer_topic or not log.has_data:
                continue
            value = SwapLogDecoderService.decode_transfer_value(log)
            if value is not None:
                yield log, value

    def _match_reference(
        self, receipt: ReceiptEntity, address: str, role: AssetRole, swap: SwapEventEntity
    ) -> Optional[AssetTransferMatch]:
        for log, value in self._transfers(receipt):
            if log.address.lower() == address and value in (swap.amount0, swap.amount1):
                return AssetTransferMatch(role=role, log=log, value=value)
        return None

    def _match_stable(self, receipt: ReceiptEntity, swap: SwapEventEntity) -> Optional[AssetTransferMatch]:
        """
        Stable leg: prefer one settling the swap itself, else the first stable transfer.
        """
        first: Optional[AssetTransferMatch] = None
        for log, value in self._transfers(receipt):
            if log.address.lower() not in self._stables:
                continue
            match = AssetTransferMatch(role=AssetRole.STABLE, log=log, value=value)
            if value in (swap.amount0, swap.amount1):
                return match
            if first is None:
                first = match
        return first

    def within_tolerance(self, value: int, expected: int) -> bool:
        highest = max(value, expected)
        if highest == 0:
            return True
        return abs(value - expected) / highest * 100 < self._tolerance_pct

    def _match_token(
        self, receipt: ReceiptEntity, base_token: str, expected: int, multi_swap: bool
    ) -> Optional[AssetTransferMatch]:
        candidates = [(log, value) for log, value in self._transfers(receipt) if log.address.lower() == base_token]

        for log, value in candidates:
            if value == expected:
                return AssetTransferMatch(role=AssetRole.TOKEN, log=log, value=value)

        for log, value in candidates:
            if self.within_tolerance(value, expected):
                return AssetTransferMatch(role=AssetRole.TOKEN, log=log, value=value)

        sender = receipt.from_address.lower()
        router = (receipt.to_address or "").lower()
        for log, _value in candidates:
            src, dst = SwapLogDecoderService.decode_transfer_parties(log)
            if sender in (src, dst) or (multi_swap and router and dst == router):
                return AssetTransferMatch(role=AssetRole.TOKEN, log=log, value=expected)
        return None

    # ---------------------------------------------------------------- branches

    def select_branch(
        self,
        weth: Optional[AssetTransferMatch],
        wbtc: Optional[AssetTransferMatch],
        stable: Optional[AssetTransferMatch],
    ) -> Optional[SwapBranch]:
        if weth is not None and stable is None:
            kind = CounterAssetKind.ETH
        elif weth is not None:
            kind = CounterAssetKind.ETH_STABLE
        elif wbtc is not None and stable is not None:
            kind = CounterAssetKind.BTC_STABLE
        elif stable is not None:
            kind = CounterAssetKind.STABLE
        else:
            return None
        return self._branch_handlers[kind](weth=weth, wbtc=wbtc, stable=stable)

    @staticmethod
    def _eth_branch(*, weth, wbtc, stable) -> SwapBranch:
        return SwapBranch(kind=CounterAssetKind.ETH, counter=weth, usd_leg=None, eth_leg=weth, multi_swap=False)

    @staticmethod
    def _eth_stable_branch(*, weth, wbtc, stable) -> SwapBranch:
        return SwapBranch(kind=CounterAssetKind.ETH_STABLE, counter=weth, usd_leg=stable, eth_leg=weth, multi_swap=True)

    @staticmethod
    def _btc_stable_branch(*, weth, wbtc, stable) -> SwapBranch:
        return SwapBranch(kind=CounterAssetKind.BTC_STABLE, counter=wbtc, usd_leg=stable, eth_leg=None, multi_swap=True)

    @staticmethod
    def _stable_branch(*, weth, wbtc, stable) -> SwapBranch:
        return SwapBranch(kind=CounterAssetKind.STABLE, counter=stable, usd_leg=stable, eth_leg=None, multi_swap=True)

    # ---------------------------------------------------------------- trade

    async def _classify_swap(
        self,
        receipt: ReceiptEntity,
        log: LogEntryEntity,
        protocol: SwapProtocol,
        pair: PoolPairEntity,
        historical: bool,
    ) -> Optional[ClassifiedTransactionEntity]:
        tx = receipt.transaction_hash
        swap = SwapLogDecoderService.decode_swap(log, protocol)

        branch = self.select_branch(
            weth=self._match_reference(receipt, self._weth, AssetRole.WETH, swap),
            wbtc=self._match_reference(receipt, self._wbtc, AssetRole.WBTC, swap),
            stable=self._match_stable(receipt, swap),
        )
        if branch is None:
            self._logger.debug("No counter-asset transfer tx=%s pool=%s", tx, pair.pool_address)
            return None

        token_match = self._match_token(
            receipt, pair.base_token, swap.counter_amount(branch.counter.value), branch.multi_swap
        )
        if token_match is None:
            self._logger.debug("No token transfer tx=%s pool=%s", tx, pair.pool_address)
            return None

        timestamp = await self._chain.get_block_timestamp(receipt.block_number)
        if timestamp is None:
            self._logger.debug("No block timestamp tx=%s block=%s", tx, receipt.block_number)
            return None

        token_meta, counter_meta, usd_meta, eth_price, btc_price = await asyncio.gather(
            self._chain.get_token_metadata(token_match.asset_address),
            self._chain.get_token_metadata(branch.counter.asset_address),
            self._usd_leg_metadata(branch),
            self._prices.resolve(ETH, timestamp, historical=historical),
            self._prices.resolve(BTC, timestamp, historical=historical),
        )
        if token_meta is None or counter_meta is None or (branch.usd_leg is not None and usd_meta is None):
            self._logger.debug("Missing token metadata tx=%s", tx)
            return None

        token_amount = token_meta.to_units(token_match.value)
        eth_amount = counter_meta.to_units(branch.eth_leg.value) if branch.eth_leg is not None else 0.0
        usd_amount = usd_meta.to_units(branch.usd_leg.value) if usd_meta is not None else 0.0
        usd_value = usd_amount or (eth_amount * eth_price if eth_price else 0.0)

        eth_reserve, token_reserve = self._pool_reserves(receipt, pair, token_meta)

        return ClassifiedTransactionEntity(
            tx_hash=tx,
            trade_type=DIRECTION_RULES[SwapProtocol(swap.protocol)](branch.counter.value, swap),
            protocol=swap.protocol,
            pool_address=pair.pool_address,
            token_address=token_meta.address.lower(),
            token_name=token_meta.name,
            token_symbol=token_meta.symbol,
            token_decimals=token_meta.decimals,
            token_total_supply=token_meta.total_supply,
            token_amount=token_amount,
            eth_amount=eth_amount,
            usd_value=usd_value,
            token_price_usd=usd_value / token_amount if token_amount else None,
            eth_reserve=eth_reserve,
            token_reserve=token_reserve,
            eth_price=eth_price,
            btc_price=btc_price,
            block_number=receipt.block_number,
            timestamp=int(timestamp),
            multi_swap=branch.multi_swap,
        )

    async def _usd_leg_metadata(self, branch: SwapBranch) -> Optional[TokenMetadataEntity]:
        if branch.usd_leg is None:
            return None
        return await self._chain.get_token_metadata(branch.usd_leg.asset_address)

    def _pool_reserves(
        self, receipt: ReceiptEntity, pair: PoolPairEntity, token_meta: TokenMetadataEntity
    ) -> Tuple[Optional[float], Optional[float]]:
        """
        (eth_reserve, token_reserve) from the pool's Sync log when the pool is quoted in WETH.
        """
        if pair.quote_token != self._weth:
            return None, None
        for log in receipt.logs:
            if log.topic0 == self._sync_topic and log.address.lower() == pair.pool_address:
                reserve0, reserve1 = SwapLogDecoderService.decode_reserves(log)
                quote_raw, base_raw = (reserve0, reserve1) if pair.quote_is_token0 else (reserve1, reserve0)
                return quote_raw / 10 ** 18, token_meta.to_units(base_raw)
        return None, None
