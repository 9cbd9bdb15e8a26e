"""
Wallet Manager
==============

Holds the trading keypair. Imports a base58 64-byte secret key, or
generates a fresh keypair (with a backup file) when none is configured.

SECURITY: use a dedicated trading wallet holding limited funds.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import base58
from solana.rpc.async_api import AsyncClient
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from sniper.config import PLACEHOLDER_PRIVATE_KEY
from sniper.core.helpers import lamports_to_sol
from sniper.errors import WalletError

logger = logging.getLogger(__name__)

BACKUP_FILENAME = '.wallet-backup.json'
LOW_BALANCE_SOL = 0.01


class WalletManager:

    def __init__(
        self,
        client: AsyncClient,
        backup_dir: str = '.',
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.backup_dir = Path(backup_dir).expanduser()
        self.logger = logger or logging.getLogger(__name__)
        self._keypair: Optional[Keypair] = None

    @property
    def keypair(self) -> Keypair:
        if self._keypair is None:
            raise WalletError('Wallet not initialized')
        return self._keypair

    @property
    def is_initialized(self) -> bool:
        return self._keypair is not None

    def initialize(self, private_key: Optional[str] = None) -> Keypair:
        if private_key and private_key != PLACEHOLDER_PRIVATE_KEY:
            self._keypair = self.import_private_key(private_key)
            self.logger.info(f"Wallet loaded: {self._keypair.pubkey()}")
        else:
            self.logger.warning("No private key provided. Generating new wallet...")
            self._keypair = self.generate()
        return self._keypair

    def import_private_key(self, private_key: str) -> Keypair:
        """
        Raises:
            WalletError: not base58 or not a 64-byte secret key
        """
        try:
            secret = base58.b58decode(private_key.strip())
        except ValueError as e:
            raise WalletError(f"Invalid private key format: {e}") from e

        if len(secret) != 64:
            raise WalletError(
                f"Invalid private key format: expected 64 bytes, got {len(secret)}"
            )

        try:
            return Keypair.from_bytes(secret)
        except ValueError as e:
            raise WalletError(f"Invalid private key format: {e}") from e

    def generate(self) -> Keypair:
        keypair = Keypair()
        public_key = str(keypair.pubkey())

        self.logger.warning("=" * 66)
        self.logger.warning("NEW WALLET GENERATED - SAVE THE KEYS FROM THE BACKUP FILE")
        self.logger.warning(f"Public key: {public_key}")
        self.logger.warning("Add PRIVATE_KEY to your .env and fund the wallet before trading")
        self.logger.warning("=" * 66)

        self._save_backup(public_key, base58.b58encode(bytes(keypair)).decode())
        return keypair

    def _save_backup(self, public_key: str, private_key: str):
        path = self.backup_dir / BACKUP_FILENAME
        backup = {
            'generatedAt': datetime.now(timezone.utc).isoformat(),
            'publicKey': public_key,
            'privateKey': private_key,
            'warning': 'DELETE THIS FILE AFTER SAVING KEYS SECURELY!',
        }
        try:
            path.write_text(json.dumps(backup, indent=2), encoding='utf-8')
            self.logger.warning(f"Wallet backup saved to {path} - DELETE AFTER SAVING!")
        except OSError as e:
            self.logger.error(f"Could not save wallet backup file: {e}")

    def public_address(self) -> str:
        return str(self.keypair.pubkey())

    def sign(self, transaction: VersionedTransaction) -> VersionedTransaction:
        """Sign a routing-service transaction with the trading key."""
        return VersionedTransaction(transaction.message, [self.keypair])

    async def get_balance(self) -> float:
        """SOL balance."""
        resp = await self.client.get_balance(self.keypair.pubkey())
        return lamports_to_sol(resp.value)

    async def has_sufficient_balance(self, required_sol: float) -> bool:
        return await self.get_balance() >= required_sol

    async def log_balance(self):
        try:
            balance = await self.get_balance()
        except Exception as e:
            self.logger.error(f"Failed to get balance: {e}")
            return
        self.logger.info(f"Wallet balance: {balance:.4f} SOL")
        if balance < LOW_BALANCE_SOL:
            self.logger.warning("Low balance! Fund your wallet before trading.")
