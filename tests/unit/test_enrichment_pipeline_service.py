import asyncio

import pytest

from core.domain.errors import UpstreamServiceError
from core.services.enrichment_pipeline_service import EnrichmentPipelineService

from swap_fixtures import FakeChainRepository, make_receipt, make_trade


class RecordingClassifier:
    """Returns a trade per receipt unless the hash is listed as a skip; tracks concurrency."""

    def __init__(self, *, skip=(), fail=(), delays=None):
        self.skip = set(skip)
        self.fail = set(fail)
        self.delays = delays or {}
        self.seen = []
        self.tokens = []
        self.in_flight = 0
        self.peak = 0

    async def classify(self, receipt, *, token_address=None, historical=False):
        tx = receipt.transaction_hash
        self.seen.append(tx)
        self.tokens.append(token_address)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(tx, 0))
            if tx in self.fail:
                raise RuntimeError(f"cannot classify {tx}")
            if tx in self.skip:
                return None
            return make_trade(tx, 1_000 + len(self.seen))
        finally:
            self.in_flight -= 1


def make_pipeline(hashes, classifier, missing=()):
    receipts = {h: make_receipt([], tx_hash=h) for h in hashes if h not in missing}
    chain = FakeChainRepository(receipts=receipts)
    return EnrichmentPipelineService(chain_repository=chain, classifier=classifier)


class TestEnrichmentPipelineService:
    @pytest.mark.asyncio
    async def test_output_follows_input_order(self):
        hashes = [f"0x{i}" for i in range(6)]
        # earlier items finish last
        classifier = RecordingClassifier(delays={"0x0": 0.03, "0x1": 0.02, "0x2": 0.01})
        pipeline = make_pipeline(hashes, classifier)

        trades = await pipeline.enrich(hashes, concurrency=3)

        assert [t.tx_hash for t in trades] == hashes

    @pytest.mark.asyncio
    async def test_skips_and_failures_are_dropped(self):
        hashes = ["0xa", "0xb", "0xc", "0xd"]
        classifier = RecordingClassifier(skip={"0xb"}, fail={"0xc"})
        pipeline = make_pipeline(hashes, classifier, missing={"0xd"})

        trades = await pipeline.enrich(hashes, concurrency=2)

        assert [t.tx_hash for t in trades] == ["0xa"]
        assert sorted(classifier.seen) == ["0xa", "0xb", "0xc"]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded_and_each_item_attempted_once(self):
        hashes = [f"0x{i}" for i in range(20)]
        classifier = RecordingClassifier(delays={h: 0.001 for h in hashes})
        pipeline = make_pipeline(hashes, classifier)

        trades = await pipeline.enrich(hashes, concurrency=4)

        assert len(trades) == 20
        assert classifier.peak <= 4
        assert sorted(classifier.seen) == sorted(hashes)

    @pytest.mark.asyncio
    async def test_receipt_fetch_error_is_isolated(self):
        classifier = RecordingClassifier()
        chain = FakeChainRepository(
            receipts={"0xa": make_receipt([], tx_hash="0xa"), "0xb": RuntimeError("rpc down")}
        )
        pipeline = EnrichmentPipelineService(chain_repository=chain, classifier=classifier)

        trades = await pipeline.enrich(["0xa", "0xb"], concurrency=2)

        assert [t.tx_hash for t in trades] == ["0xa"]

    @pytest.mark.asyncio
    async def test_empty_input(self):
        pipeline = make_pipeline([], RecordingClassifier())
        assert await pipeline.enrich([], concurrency=10) == []

    @pytest.mark.asyncio
    async def test_token_address_reaches_classifier(self):
        classifier = RecordingClassifier()
        pipeline = make_pipeline(["0xa", "0xb"], classifier)

        await pipeline.enrich(["0xa", "0xb"], concurrency=2, token_address="0xtoken")

        assert classifier.tokens == ["0xtoken", "0xtoken"]

    @pytest.mark.asyncio
    async def test_upstream_failure_aborts_enrichment(self):
        hashes = [f"0x{i}" for i in range(8)]
        classifier = RecordingClassifier(delays={h: 0.01 for h in hashes})
        receipts = {h: make_receipt([], tx_hash=h) for h in hashes}
        receipts["0x1"] = UpstreamServiceError("rpc", "connection refused")
        chain = FakeChainRepository(receipts=receipts)
        pipeline = EnrichmentPipelineService(chain_repository=chain, classifier=classifier)

        with pytest.raises(UpstreamServiceError):
            await pipeline.enrich(hashes, concurrency=2)

        # siblings are cancelled before the rest of the batch is pulled
        assert len(classifier.seen) < len(hashes)
