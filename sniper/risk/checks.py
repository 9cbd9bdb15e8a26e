"""
Risk Checks
===========

Fixed battery of token safety checks. Each check looks at the provider
snapshots and returns PASS, FAIL or UNVERIFIED (data unavailable).

Scoring:
    PASS        -> adds the check's weight to the score
    FAIL        -> hard checks add a risk (veto), soft checks a warning
    UNVERIFIED  -> no points, adds a "Cannot verify" warning, no veto

Weights sum to 100:

    honeypot (transfer restriction)  25  hard
    ownership renounced              15  soft
    freeze authority revoked         15  hard
    mint authority revoked           15  hard
    minimum liquidity                20  hard
    tax rate                         10  hard
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from sniper.config import SecurityChecksConfig
from sniper.models import CheckResult, CheckStatus

Snapshot = Optional[Dict[str, Any]]
CheckFn = Callable[[Snapshot, Snapshot, SecurityChecksConfig], CheckResult]


def _unverified(name: str, what: str) -> CheckResult:
    return CheckResult(name, CheckStatus.UNVERIFIED, f"Cannot verify {what}")


def _result(name: str, ok: bool, pass_msg: str, fail_msg: str, data: dict) -> CheckResult:
    return CheckResult(
        name,
        CheckStatus.PASS if ok else CheckStatus.FAIL,
        pass_msg if ok else fail_msg,
        data,
    )


def check_honeypot(security: Snapshot, market: Snapshot, cfg: SecurityChecksConfig) -> CheckResult:
    """Non-transferable, or freezeable with a live freeze authority."""
    if not security or ('nonTransferable' not in security and 'freezeable' not in security):
        return _unverified('honeypot', 'transferability')

    is_honeypot = (
        security.get('nonTransferable') is True
        or (security.get('freezeable') is True and security.get('freezeAuthority') is not None)
    )
    return _result(
        'honeypot', not is_honeypot,
        'No honeypot indicators found',
        'Token has honeypot indicators (non-transferable or freezeable)',
        {
            'nonTransferable': security.get('nonTransferable'),
            'freezeable': security.get('freezeable'),
        },
    )


def check_ownership(security: Snapshot, market: Snapshot, cfg: SecurityChecksConfig) -> CheckResult:
    if not security or ('ownerAddress' not in security and 'renounced' not in security):
        return _unverified('ownership', 'ownership status')

    renounced = security.get('renounced') is True or (
        'ownerAddress' in security and security['ownerAddress'] is None
    )
    return _result(
        'ownership', renounced,
        'Ownership renounced',
        'Ownership not renounced',
        {'ownerAddress': security.get('ownerAddress'), 'renounced': security.get('renounced')},
    )


def check_freeze_authority(security: Snapshot, market: Snapshot, cfg: SecurityChecksConfig) -> CheckResult:
    if not security or ('freezeable' not in security and 'freezeAuthority' not in security):
        return _unverified('freezeable', 'freeze authority')

    safe = security.get('freezeable') is False or (
        'freezeAuthority' in security and security['freezeAuthority'] is None
    )
    return _result(
        'freezeable', safe,
        'Freeze authority revoked or disabled',
        'Freeze authority enabled',
        {'freezeable': security.get('freezeable'), 'freezeAuthority': security.get('freezeAuthority')},
    )


def check_mint_authority(security: Snapshot, market: Snapshot, cfg: SecurityChecksConfig) -> CheckResult:
    if not security or 'mintable' not in security:
        return _unverified('mintable', 'mint authority')

    safe = security.get('mintable') is False
    return _result(
        'mintable', safe,
        'Mint authority revoked',
        'Mint authority active (supply can be increased)',
        {'mintable': security.get('mintable')},
    )


def check_liquidity(security: Snapshot, market: Snapshot, cfg: SecurityChecksConfig) -> CheckResult:
    if not market:
        return _unverified('liquidity', 'liquidity')

    try:
        liquidity_usd = float((market.get('liquidity') or {}).get('usd') or 0)
    except (TypeError, ValueError):
        liquidity_usd = 0.0

    return _result(
        'liquidity', liquidity_usd >= cfg.min_liquidity_usd,
        f"Liquidity: ${liquidity_usd:,.2f}",
        f"Insufficient liquidity: ${liquidity_usd:,.2f}",
        {'liquidity_usd': liquidity_usd, 'min_required': cfg.min_liquidity_usd},
    )


def transfer_fee_percent(security: Snapshot) -> Optional[float]:
    """
    Token-2022 transfer fee as a percentage, 0.0 when disabled,
    None when the snapshot carries no transfer fee information.
    """
    if not security or ('transferFeeEnable' not in security and 'transferFeeData' not in security):
        return None
    if security.get('transferFeeEnable') is not True:
        return 0.0

    fee_data = security.get('transferFeeData') or {}
    current = fee_data.get('newerTransferFee') or fee_data
    bps = current.get('transferFeeBasisPoints')
    if bps is None:
        return None
    try:
        return float(bps) / 100
    except (TypeError, ValueError):
        return None


def check_tax(security: Snapshot, market: Snapshot, cfg: SecurityChecksConfig) -> CheckResult:
    # on Solana the transfer fee is charged on both sides of a trade
    fee = transfer_fee_percent(security)
    if fee is None:
        return _unverified('taxes', 'tax rates')

    ok = fee <= cfg.max_buy_tax_percent and fee <= cfg.max_sell_tax_percent
    return _result(
        'taxes', ok,
        f"Tax rate: {fee:.2f}%",
        f"High tax rate: {fee:.2f}%",
        {'buy_tax': fee, 'sell_tax': fee},
    )


@dataclass(frozen=True)
class RiskCheck:
    name: str
    weight: int
    hard: bool
    fn: CheckFn
    enabled: Callable[[SecurityChecksConfig], bool]
    failure: Callable[[SecurityChecksConfig], str]


# Fixed battery, evaluated in this order
CHECKS: Tuple[RiskCheck, ...] = (
    RiskCheck('honeypot', 25, True, check_honeypot,
              lambda c: c.honeypot_detection,
              lambda c: 'Honeypot risk detected'),
    RiskCheck('ownership', 15, False, check_ownership,
              lambda c: c.ownership_renounced,
              lambda c: 'Ownership not renounced'),
    RiskCheck('freezeable', 15, True, check_freeze_authority,
              lambda c: c.check_freezeable,
              lambda c: 'Freeze authority enabled'),
    RiskCheck('mintable', 15, True, check_mint_authority,
              lambda c: c.check_mintable,
              lambda c: 'Mint authority not revoked'),
    RiskCheck('liquidity', 20, True, check_liquidity,
              lambda c: c.min_liquidity_usd > 0,
              lambda c: f'Liquidity below minimum (${c.min_liquidity_usd:,.0f})'),
    RiskCheck('taxes', 10, True, check_tax,
              lambda c: True,
              lambda c: 'High tax rates detected'),
)


@dataclass
class CheckOutcome:
    score: int
    risks: List[str]
    warnings: List[str]
    results: Dict[str, CheckResult]


def run_checks(
    security: Snapshot,
    market: Snapshot,
    cfg: SecurityChecksConfig,
    checks: Tuple[RiskCheck, ...] = CHECKS,
) -> CheckOutcome:
    outcome = CheckOutcome(score=0, risks=[], warnings=[], results={})

    for check in checks:
        if not check.enabled(cfg):
            continue

        result = check.fn(security, market, cfg)
        outcome.results[check.name] = result

        if result.status == CheckStatus.PASS:
            outcome.score += check.weight
        elif result.status == CheckStatus.UNVERIFIED:
            outcome.warnings.append(result.message)
        elif check.hard:
            outcome.risks.append(check.failure(cfg))
        else:
            outcome.warnings.append(check.failure(cfg))

    return outcome
