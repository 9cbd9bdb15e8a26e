"""Order engine, position book, wallet and router."""

import asyncio
import base64
import json
import math
from unittest.mock import AsyncMock, MagicMock, patch

import base58
import pytest
from solders.keypair import Keypair

from sniper.config import AdvancedConfig, TradingConfig
from sniper.core.constants import KNOWN_MINTS
from sniper.core.policies import RetryPolicy
from sniper.errors import RoutingError, TransactionFailedError, ValidationError, WalletError
from sniper.execution import JupiterClient, OrderExecutionEngine, PositionBook, WalletManager
from sniper.execution.wallet import BACKUP_FILENAME
from sniper.models import Position, SwapResult, TradeDirection

from builders import MINT, OTHER_MINT, WALLET_A

SOL = KNOWN_MINTS['SOL']
QUOTE = {
    'inAmount': '100000000',
    'outAmount': '5000000',
    'priceImpactPct': '0.12',
    'routePlan': [{'swapInfo': {}}],
}


class SignedTx:
    def __bytes__(self):
        return b'signed-tx'


def make_engine(max_buy=0.4, balance_ok=True):
    wallet = MagicMock()
    wallet.public_address.return_value = WALLET_A
    wallet.has_sufficient_balance = AsyncMock(return_value=balance_ok)
    wallet.sign.return_value = SignedTx()

    router = MagicMock()
    router.get_quote = AsyncMock(return_value=QUOTE)
    router.build_swap = AsyncMock(return_value=base64.b64encode(b'unsigned').decode())

    client = MagicMock()
    client.send_raw_transaction = AsyncMock(return_value=MagicMock(value='SIG'))
    client.confirm_transaction = AsyncMock(return_value=MagicMock(value=[MagicMock(err=None)]))

    return OrderExecutionEngine(
        TradingConfig(buy_amount_sol=0.1, max_buy_amount_sol=max_buy),
        AdvancedConfig(skip_preflight=True, commitment='confirmed'),
        client, wallet, router,
        retry_policy=RetryPolicy(max_attempts=2, base_delay=0),
        logger=MagicMock(),
    )


def bought(engine, mint=MINT, tokens=1_000_000, sol=0.1):
    engine.execute_swap = AsyncMock(return_value=SwapResult('BUY-SIG', int(sol * 1e9), tokens))
    result = asyncio.run(engine.buy(mint, sol))
    assert result.success, result.error
    return result


class TestExecuteSwap:

    def test_quote_build_sign_send_confirm(self):
        engine = make_engine()

        with patch('sniper.execution.engine.VersionedTransaction') as vtx:
            result = asyncio.run(engine.execute_swap(SOL, MINT, 100_000_000))

        engine.router.get_quote.assert_awaited_once_with(SOL, MINT, 100_000_000, 1500)
        engine.router.build_swap.assert_awaited_once_with(QUOTE, WALLET_A, 100_000)
        vtx.from_bytes.assert_called_once_with(b'unsigned')
        engine.wallet.sign.assert_called_once_with(vtx.from_bytes.return_value)

        args, kwargs = engine.client.send_raw_transaction.await_args
        assert args[0] == b'signed-tx'
        assert kwargs['opts'].skip_preflight is True

        assert result == SwapResult('SIG', 100_000_000, 5_000_000, 0.12)

    def test_onchain_error_is_a_failure(self):
        engine = make_engine()
        engine.client.confirm_transaction = AsyncMock(
            return_value=MagicMock(value=[MagicMock(err={'InstructionError': [2, 'Custom']})])
        )

        with patch('sniper.execution.engine.VersionedTransaction'):
            with pytest.raises(TransactionFailedError, match='Transaction failed'):
                asyncio.run(engine.execute_swap(SOL, MINT, 1))

    def test_missing_status_is_not_confirmed(self):
        engine = make_engine()
        engine.client.confirm_transaction = AsyncMock(return_value=MagicMock(value=[None]))

        with patch('sniper.execution.engine.VersionedTransaction'):
            with pytest.raises(TransactionFailedError, match='not confirmed'):
                asyncio.run(engine.execute_swap(SOL, MINT, 1))

    def test_routing_failure_propagates(self):
        engine = make_engine()
        engine.router.get_quote = AsyncMock(side_effect=RoutingError('No route found'))

        with pytest.raises(RoutingError):
            asyncio.run(engine.execute_swap(SOL, MINT, 1))
        engine.client.send_raw_transaction.assert_not_awaited()


class TestBuy:

    def test_over_max_rejected_before_any_call(self):
        engine = make_engine(max_buy=0.4)
        engine.execute_swap = AsyncMock()

        result = asyncio.run(engine.buy(MINT, 0.5))

        assert result.success is False
        assert 'exceeds max' in result.error
        engine.wallet.has_sufficient_balance.assert_not_awaited()
        engine.execute_swap.assert_not_awaited()
        assert engine.get_positions() == []

    @pytest.mark.parametrize('mint, amount', [('not-a-mint', 0.1), (MINT, 0), (MINT, -1.0)])
    def test_invalid_requests_rejected(self, mint, amount):
        engine = make_engine()
        engine.execute_swap = AsyncMock()

        assert asyncio.run(engine.buy(mint, amount)).success is False
        engine.execute_swap.assert_not_awaited()
        assert engine.stats.rejected == 1

    def test_insufficient_balance(self):
        engine = make_engine(balance_ok=False)
        engine.execute_swap = AsyncMock()

        result = asyncio.run(engine.buy(MINT, 0.1))

        assert result.error == 'Insufficient SOL balance'
        engine.wallet.has_sufficient_balance.assert_awaited_once_with(pytest.approx(0.11))
        engine.execute_swap.assert_not_awaited()

    def test_success_opens_position_and_records_trade(self):
        engine = make_engine()
        result = bought(engine, tokens=1_000_000, sol=0.1)

        engine.execute_swap.assert_awaited_once_with(SOL, MINT, 100_000_000)
        position = engine.get_position(MINT)
        assert result.position is position
        assert position.entry_amount_sol == 0.1
        assert position.entry_token_amount == 1_000_000
        assert position.peak_value == 0.1

        (record,) = engine.get_trade_history()
        assert record.type == TradeDirection.BUY
        assert record.signature == 'BUY-SIG'

    def test_default_amount_from_config(self):
        engine = make_engine()
        engine.execute_swap = AsyncMock(return_value=SwapResult('S', 100_000_000, 10))

        asyncio.run(engine.buy(MINT))

        engine.execute_swap.assert_awaited_once_with(SOL, MINT, 100_000_000)

    def test_second_buy_for_same_mint_rejected(self):
        engine = make_engine()
        bought(engine)

        result = asyncio.run(engine.buy(MINT, 0.1))

        assert result.success is False
        assert 'already exists' in result.error
        assert len(engine.get_positions()) == 1

    def test_order_in_flight_rejected(self):
        engine = make_engine()
        engine._in_flight.add(MINT)
        result = asyncio.run(engine.buy(MINT, 0.1))
        assert 'in flight' in result.error

    def test_transient_failure_is_retried(self):
        engine = make_engine()
        engine.execute_swap = AsyncMock(side_effect=[
            TransactionFailedError('Transaction not confirmed'),
            SwapResult('SIG', 100_000_000, 42),
        ])

        result = asyncio.run(engine.buy(MINT, 0.1))

        assert result.success is True
        assert engine.execute_swap.await_count == 2

    def test_exhausted_retries_report_last_error(self):
        engine = make_engine()
        engine.execute_swap = AsyncMock(side_effect=[RoutingError('first'), RoutingError('No route found')])

        result = asyncio.run(engine.buy(MINT, 0.1))

        assert result.success is False
        assert result.error == 'No route found'
        assert engine.get_position(MINT) is None
        assert engine.stats.failed_buys == 1
        assert MINT not in engine._in_flight


class TestSell:

    def test_full_sell_closes_position(self):
        engine = make_engine()
        bought(engine, tokens=1_000_000, sol=0.1)
        engine.execute_swap = AsyncMock(return_value=SwapResult('SELL-SIG', 1_000_000, 200_000_000))

        result = asyncio.run(engine.sell(MINT, 100))

        engine.execute_swap.assert_awaited_once_with(MINT, SOL, 1_000_000)
        assert result.success is True
        assert result.sol_received == 0.2
        assert result.profit == pytest.approx(0.1)
        assert result.profit_percent == pytest.approx(100.0)
        assert engine.get_position(MINT) is None
        assert engine.get_total_pnl() == pytest.approx(0.1)

    def test_partial_sell_floors_and_reduces(self):
        engine = make_engine()
        bought(engine, tokens=1_000_001, sol=0.1)
        engine.execute_swap = AsyncMock(return_value=SwapResult('S', 330_000, 50_000_000))

        result = asyncio.run(engine.sell(MINT, 33))

        sold = math.floor(1_000_001 * 0.33)
        assert result.token_amount == sold
        position = engine.get_position(MINT)
        assert position.entry_token_amount == 1_000_001 - sold
        assert position.entry_amount_sol == 0.1
        assert position.cost_basis == pytest.approx(0.067)
        assert result.profit == pytest.approx(0.05 - 0.033)

    def test_sell_after_partial_uses_remaining_cost(self):
        engine = make_engine()
        bought(engine, tokens=1_000_000, sol=0.1)
        engine.execute_swap = AsyncMock(return_value=SwapResult('S1', 500_000, 100_000_000))
        asyncio.run(engine.sell(MINT, 50))

        engine.execute_swap = AsyncMock(return_value=SwapResult('S2', 500_000, 25_000_000))
        result = asyncio.run(engine.sell(MINT, 100))

        assert result.profit == pytest.approx(0.025 - 0.05)
        assert result.profit_percent == pytest.approx(-50.0)
        assert engine.get_position(MINT) is None

    @pytest.mark.parametrize('percent', [0, -5, 100.5])
    def test_bad_percentage_rejected(self, percent):
        engine = make_engine()
        bought(engine)
        engine.execute_swap = AsyncMock()

        result = asyncio.run(engine.sell(MINT, percent))

        assert result.success is False
        engine.execute_swap.assert_not_awaited()

    def test_no_position(self):
        engine = make_engine()
        result = asyncio.run(engine.sell(OTHER_MINT, 100))
        assert 'No position' in result.error

    def test_amount_rounding_to_zero_rejected(self):
        engine = make_engine()
        bought(engine, tokens=10)
        engine.execute_swap = AsyncMock()

        result = asyncio.run(engine.sell(MINT, 5))

        assert result.success is False
        engine.execute_swap.assert_not_awaited()

    def test_failed_sell_keeps_position(self):
        engine = make_engine()
        bought(engine)
        engine.execute_swap = AsyncMock(side_effect=TransactionFailedError('Transaction failed: x'))

        result = asyncio.run(engine.sell(MINT, 100))

        assert result.success is False
        assert engine.get_position(MINT) is not None
        assert engine.stats.failed_sells == 1

    def test_pnl_sums_sells_only(self):
        engine = make_engine()
        bought(engine, mint=MINT, sol=0.1)
        bought(engine, mint=OTHER_MINT, sol=0.2)
        engine.execute_swap = AsyncMock(side_effect=[
            SwapResult('a', 0, 150_000_000),
            SwapResult('b', 0, 100_000_000),
        ])

        async def go():
            await engine.sell(MINT, 100)
            await engine.sell(OTHER_MINT, 100)

        asyncio.run(go())

        assert engine.get_total_pnl() == pytest.approx(0.05 - 0.1)
        assert engine.get_stats()['sells'] == 2
        assert engine.get_stats()['open_positions'] == 0


class TestPositionBook:

    def test_one_position_per_mint(self):
        book = PositionBook()
        book.open(Position(MINT, 0.1, 100, 0.0))
        with pytest.raises(ValidationError):
            book.open(Position(MINT, 0.2, 100, 0.0))
        assert len(book) == 1

    def test_partial_sell_keeps_peak_and_cost(self):
        book = PositionBook()
        position = book.open(Position(MINT, 1.0, 1000, 0.0))
        position.observe(2.0)

        book.reduce(MINT, 500, 50)

        assert position.entry_token_amount == 500
        assert position.size_fraction == 0.5
        assert position.entry_amount_sol == 1.0
        assert position.cost_basis == 0.5
        assert position.peak_value == 2.0
        assert position.current_value == 1.0
        assert position.multiplier == pytest.approx(2.0)

    def test_peak_keeps_full_size_units_after_partial_sell(self):
        book = PositionBook()
        position = book.open(Position(MINT, 1.0, 1000, 0.0))
        position.observe(2.0)
        book.reduce(MINT, 500, 50)

        position.observe(0.9)
        assert position.peak_value == 2.0

        position.observe(1.5)
        assert position.peak_value == pytest.approx(3.0)

    def test_reduce_rejects_full_exit(self):
        book = PositionBook()
        book.open(Position(MINT, 1.0, 10, 0.0))
        with pytest.raises(ValidationError):
            book.reduce(MINT, 10, 100)

    def test_reduce_cannot_oversell(self):
        book = PositionBook()
        book.open(Position(MINT, 1.0, 10, 0.0))
        with pytest.raises(ValidationError):
            book.reduce(MINT, 11, 100)


class TestWalletManager:

    def test_import_valid_key(self):
        keypair = Keypair()
        wallet = WalletManager(MagicMock(), logger=MagicMock())

        wallet.initialize(base58.b58encode(bytes(keypair)).decode())

        assert wallet.public_address() == str(keypair.pubkey())

    @pytest.mark.parametrize('key', ['abc', '0OIl' * 10])
    def test_invalid_key(self, key):
        wallet = WalletManager(MagicMock(), logger=MagicMock())
        with pytest.raises(WalletError, match='Invalid private key format'):
            wallet.import_private_key(key)

    def test_uninitialized(self):
        wallet = WalletManager(MagicMock(), logger=MagicMock())
        assert not wallet.is_initialized
        with pytest.raises(WalletError):
            wallet.public_address()

    def test_generate_writes_backup(self, tmp_path):
        wallet = WalletManager(MagicMock(), backup_dir=str(tmp_path), logger=MagicMock())

        keypair = wallet.initialize(None)

        backup = json.loads((tmp_path / BACKUP_FILENAME).read_text())
        assert backup['publicKey'] == str(keypair.pubkey())
        restored = Keypair.from_bytes(base58.b58decode(backup['privateKey']))
        assert restored.pubkey() == keypair.pubkey()

    def test_balance_in_sol(self, tmp_path):
        client = MagicMock()
        client.get_balance = AsyncMock(return_value=MagicMock(value=2_500_000_000))
        wallet = WalletManager(client, backup_dir=str(tmp_path), logger=MagicMock())
        wallet.initialize(None)

        assert asyncio.run(wallet.get_balance()) == 2.5
        assert asyncio.run(wallet.has_sufficient_balance(2.5)) is True
        assert asyncio.run(wallet.has_sufficient_balance(2.6)) is False


class TestJupiterClient:

    def test_quote_params(self):
        router = JupiterClient('https://jup.invalid/', logger=MagicMock())
        router._request = AsyncMock(return_value=QUOTE)

        assert asyncio.run(router.get_quote(SOL, MINT, 1000, 1500)) == QUOTE
        method, path = router._request.await_args.args
        params = router._request.await_args.kwargs['params']
        assert (method, path) == ('GET', '/quote')
        assert params['amount'] == '1000'
        assert params['slippageBps'] == '1500'

    def test_quote_without_output(self):
        router = JupiterClient('https://jup.invalid', logger=MagicMock())
        router._request = AsyncMock(return_value={'routePlan': [{}]})
        with pytest.raises(RoutingError, match='Failed to get quote'):
            asyncio.run(router.get_quote(SOL, MINT, 1, 50))

    def test_quote_without_route(self):
        router = JupiterClient('https://jup.invalid', logger=MagicMock())
        router._request = AsyncMock(return_value=dict(QUOTE, routePlan=[]))
        with pytest.raises(RoutingError, match='No route found'):
            asyncio.run(router.get_quote(SOL, MINT, 1, 50))

    def test_build_swap(self):
        router = JupiterClient('https://jup.invalid', logger=MagicMock())
        router._request = AsyncMock(return_value={'swapTransaction': 'AAAA'})

        assert asyncio.run(router.build_swap(QUOTE, WALLET_A, 250_000)) == 'AAAA'
        body = router._request.await_args.kwargs['json']
        assert body['userPublicKey'] == WALLET_A
        assert body['wrapAndUnwrapSol'] is True
        assert body['prioritizationFeeLamports']['priorityLevelWithMaxLamports']['maxLamports'] == 250_000

    def test_build_swap_without_transaction(self):
        router = JupiterClient('https://jup.invalid', logger=MagicMock())
        router._request = AsyncMock(return_value={})
        with pytest.raises(RoutingError):
            asyncio.run(router.build_swap(QUOTE, WALLET_A, 1))
