"""Config loading, environment merge, validation and masking."""

import json
from pathlib import Path

import pytest

from sniper.config import BotConfig, EnvConfig, load_config, validate_config
from sniper.errors import ConfigError

from builders import WALLET_A, WALLET_B

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / 'config.example.json'

ENV = {
    'HELIUS_API_KEY': 'helius-secret',
    'HELIUS_RPC_URL': 'https://mainnet.helius-rpc.com/?api-key=helius-secret',
    'HELIUS_WS_URL': 'wss://mainnet.helius-rpc.com/?api-key=helius-secret',
    'HELIUS_DEVNET_RPC_URL': 'https://devnet.helius-rpc.com/?api-key=dev',
    'HELIUS_DEVNET_WS_URL': 'wss://devnet.helius-rpc.com/?api-key=dev',
    'JUPITER_API_KEY': 'jup-secret',
    'BIRDEYE_API_KEY': 'bird-secret',
    'PRIVATE_KEY': 'very-secret-key',
}


def write_config(tmp_path, data):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps(data))
    return str(path)


def valid_config(**env):
    config = BotConfig()
    config.env = EnvConfig.from_environ({**ENV, **env})
    return config


class TestLoadConfig:

    def test_camel_case_keys_mapped(self, tmp_path):
        path = write_config(tmp_path, {
            'trading': {
                'buyAmountSOL': 0.25,
                'slippageBps': 900,
                'autoSell': {'profitTargetMultiplier': 3, 'checkIntervalMs': 2000},
            },
            'security': {'minScore': 70, 'checks': {'minLiquidityUSD': 10000}},
            'copyTrading': {'enabled': True, 'maxCopyAmountSOL': 0.05},
            'blacklist': {'creators': ['bad-dev']},
        })

        config = load_config(path, environ=ENV)

        assert config.trading.buy_amount_sol == 0.25
        assert config.trading.slippage_bps == 900
        assert config.trading.auto_sell.profit_target_multiplier == 3
        assert config.trading.auto_sell.check_interval_ms == 2000
        assert config.trading.auto_sell.stop_loss_percent == 30.0
        assert config.security.min_score == 70
        assert config.security.checks.min_liquidity_usd == 10000
        assert config.copy_trading.enabled is True
        assert config.copy_trading.max_copy_amount_sol == 0.05
        assert config.blacklist.creators == ['bad-dev']

    def test_example_file_loads(self):
        config = load_config(str(EXAMPLE_CONFIG), environ=ENV)
        assert config.monitoring.platforms == ['pumpfun', 'pumpswap', 'raydium']
        assert config.advanced.commitment == 'confirmed'

    def test_env_endpoints(self, tmp_path):
        config = load_config(write_config(tmp_path, {}), environ=ENV)
        assert config.env.network == 'mainnet'
        assert config.env.ws_url == ENV['HELIUS_WS_URL']
        assert config.env.private_key == 'very-secret-key'

    def test_devnet_endpoints(self, tmp_path):
        config = load_config(write_config(tmp_path, {}), environ={**ENV, 'NETWORK': 'devnet'})
        assert config.env.is_devnet
        assert config.env.rpc_url == ENV['HELIUS_DEVNET_RPC_URL']
        assert config.env.ws_url == ENV['HELIUS_DEVNET_WS_URL']

    def test_smart_money_wallets(self, tmp_path):
        environ = {**ENV, 'SMART_MONEY_WALLETS': f' {WALLET_A}, ,{WALLET_B} '}
        config = load_config(write_config(tmp_path, {}), environ=environ)
        assert config.env.copy_wallets == [WALLET_A, WALLET_B]

    def test_logging_overrides(self, tmp_path):
        environ = {**ENV, 'LOG_LEVEL': 'debug', 'LOG_TO_FILE': 'true'}
        config = load_config(write_config(tmp_path, {'logging': {'level': 'info'}}), environ=environ)
        assert config.logging.level == 'debug'
        assert config.logging.to_file is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match='not found'):
            load_config(str(tmp_path / 'nope.json'), environ=ENV)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{"trading": ')
        with pytest.raises(ConfigError, match='not valid JSON'):
            load_config(str(path), environ=ENV)

    def test_wrong_section_type(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, {'trading': [1, 2]}), environ=ENV)

    def test_unknown_keys_ignored(self, tmp_path):
        config = load_config(write_config(tmp_path, {'trading': {'somethingNew': 1}}), environ=ENV)
        assert config.trading.buy_amount_sol == 0.1


class TestValidateConfig:

    def test_complete_config_is_valid(self):
        result = validate_config(valid_config())
        assert result.valid
        assert result.errors == []

    def test_missing_helius_settings(self):
        config = BotConfig()
        config.env = EnvConfig.from_environ({})

        result = validate_config(config)

        assert not result.valid
        assert 'HELIUS_API_KEY is required' in result.errors
        assert 'HELIUS_RPC_URL is required' in result.errors
        assert 'HELIUS_WS_URL is required' in result.errors
        assert any('new wallet' in w for w in result.warnings)

    def test_buy_amount_above_max(self):
        config = valid_config()
        config.trading.buy_amount_sol = 1.0
        config.trading.max_buy_amount_sol = 0.5
        assert 'buyAmountSOL cannot exceed maxBuyAmountSOL' in validate_config(config).errors

    def test_risky_settings_warn(self):
        config = valid_config(JUPITER_API_KEY='', BIRDEYE_API_KEY='')
        config.trading.slippage_bps = 6000
        config.copy_trading.enabled = True

        result = validate_config(config)

        assert result.valid
        assert len(result.warnings) == 4


class TestToDict:

    def test_secrets_masked(self):
        data = valid_config().to_dict()
        env = data['env']

        assert 'private_key' not in env
        assert env['helius_api_key'] == '***'
        assert env['jupiter_api_key'] == '***'
        assert 'helius-secret' not in json.dumps(data)
        assert env['rpc_url'].endswith('api-key=***')

    def test_unset_keys_stay_empty(self):
        config = BotConfig()
        env = config.to_dict()['env']
        assert env['birdeye_api_key'] is None
        assert env['ws_url'] is None
