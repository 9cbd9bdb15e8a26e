"""
Solana constants used across the bot.
"""

LAMPORTS_PER_SOL = 1_000_000_000

# SOL kept back on every buy for network + priority fees
FEE_BUFFER_SOL = 0.01

KNOWN_MINTS = {
    'SOL': 'So11111111111111111111111111111111111111112',
    'WSOL': 'So11111111111111111111111111111111111111112',
    'USDC': 'EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v',
    'USDT': 'Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB',
}

PROGRAM_IDS = {
    'PUMP_FUN': '6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P',
    'PUMP_SWAP': 'pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA',
    'RAYDIUM_AMM_V4': '675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8',
    'RAYDIUM_CPMM': 'CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C',
    'TOKEN_PROGRAM': 'TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA',
    'TOKEN_2022': 'TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb',
}
